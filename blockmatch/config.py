"""설정 저장/불러오기 관리"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, Union

from .core.block_matching import _MATCHER_KEYS
from .utils.logger import logger


class SettingsManager:
    """블록 매칭 설정 관리"""

    DEFAULT_SETTINGS = {
        # 매칭 파라미터
        'block_radius': 2,
        'search_radius': 3,
        'n_workers': None,
        'boundary': 'zero_flux_neumann',
        'boundary_value': 0.0,

        # 검증 파라미터
        'similarity_threshold': 0.5,
        'outlier_std_factor': 3.0,
        'gradient_threshold': 2.0,

        # 내보내기
        'output_dir': 'results',
    }

    MATCHER_KEYS = _MATCHER_KEYS

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        if config_path is None:
            # 사용자 홈 디렉토리에 설정 저장
            config_dir = Path.home() / '.blockmatch'
            config_dir.mkdir(exist_ok=True)
            config_path = config_dir / 'settings.json'

        self.config_path = Path(config_path)
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.load()

    def load(self):
        """설정 파일 로드 (없으면 기본값 유지)"""
        if not self.config_path.exists():
            return
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                saved = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"설정 로드 실패: {e}")
            return
        self.settings.update(saved)
        logger.info(f"설정 로드: {self.config_path}")

    def save(self):
        """설정 파일 저장"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self.settings, f, indent=2, ensure_ascii=False)
        logger.info(f"설정 저장: {self.config_path}")

    def get(self, key: str, default=None):
        """설정값 가져오기"""
        return self.settings.get(key, default)

    def set(self, key: str, value):
        """설정값 설정"""
        self.settings[key] = value

    def update(self, params: Dict[str, Any]):
        """여러 설정값 업데이트"""
        self.settings.update(params)

    def get_matcher_params(self) -> Dict[str, Any]:
        """BlockMatcher 생성 파라미터만 반환 (JSON 리스트 → 튜플)"""
        params = {k: self.settings.get(k) for k in self.MATCHER_KEYS}
        for key in ('block_radius', 'search_radius'):
            if isinstance(params[key], list):
                params[key] = tuple(params[key])
        return params

    def get_validation_params(self) -> Dict[str, Any]:
        """검증 파라미터만 반환"""
        keys = ['similarity_threshold', 'outlier_std_factor', 'gradient_threshold']
        return {k: self.settings.get(k) for k in keys}
