"""결과 내보내기 모듈"""

import csv
import json
from pathlib import Path
from datetime import datetime
from typing import Dict, Optional
import numpy as np

from ..models.point_sets import BlockMatchingResult

_AXIS_NAMES = ('x', 'y', 'z')


class ResultExporter:
    """블록 매칭 결과 내보내기"""

    def __init__(self, output_dir: str = "results"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    def export_csv(self,
                   result: BlockMatchingResult,
                   filename: Optional[str] = None) -> Path:
        """
        CSV로 점별 결과 내보내기

        Args:
            result: 블록 매칭 결과
            filename: 출력 파일명 (없으면 자동 생성)

        Returns:
            저장된 파일 경로
        """
        if filename is None:
            filename = f"blockmatch_results_{self.timestamp}.csv"

        output_path = self.output_dir / filename
        axes = _axis_labels(result.displacements.dimension)

        with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
            writer = csv.writer(f)

            # 헤더
            writer.writerow(
                ['Index']
                + [f'Point_{a}' for a in axes]
                + [f'Disp_{a}' for a in axes]
                + ['Similarity']
            )

            points = result.points
            disp = result.displacement_vectors
            sim = result.similarity_values

            for idx in range(result.n_points):
                writer.writerow(
                    [idx]
                    + [f"{v:.6f}" for v in points[idx]]
                    + [f"{v:.6f}" for v in disp[idx]]
                    + [f"{sim[idx]:.8f}"]
                )

        return output_path

    def export_json(self,
                    result: BlockMatchingResult,
                    parameters: Optional[Dict] = None,
                    filename: Optional[str] = None) -> Path:
        """
        JSON으로 상세 결과 내보내기

        Args:
            result: 블록 매칭 결과
            parameters: 추가로 기록할 파라미터
            filename: 출력 파일명

        Returns:
            저장된 파일 경로
        """
        if filename is None:
            filename = f"blockmatch_results_{self.timestamp}.json"

        output_path = self.output_dir / filename

        sim = result.similarity_values
        magnitude = result.displacement_magnitude
        finite = np.isfinite(magnitude)

        data = {
            "metadata": {
                "export_time": datetime.now().isoformat(),
                **result.metadata,
            },
            "parameters": parameters or {},
            "statistics": {
                "similarity": {
                    "mean": result.mean_similarity,
                    "min": result.min_similarity,
                    "max": result.max_similarity,
                },
                "displacement_magnitude": {
                    "mean": float(np.mean(magnitude[finite])) if np.any(finite) else None,
                    "max": float(np.max(magnitude[finite])) if np.any(finite) else None,
                },
            },
            "points": [
                {
                    "index": idx,
                    "point": result.points[idx].tolist(),
                    "displacement": [_json_float(v) for v in result.displacement_vectors[idx]],
                    "similarity": float(sim[idx]),
                }
                for idx in range(result.n_points)
            ],
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return output_path


def _axis_labels(dimension: int):
    if dimension <= len(_AXIS_NAMES):
        return _AXIS_NAMES[:dimension]
    return tuple(f"axis{i}" for i in range(dimension))


def _json_float(value: float) -> Optional[float]:
    """NaN/inf는 JSON null로"""
    value = float(value)
    return value if np.isfinite(value) else None
