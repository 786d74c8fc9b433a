"""유틸리티 모듈"""

from .logger import setup_logger, logger

__all__ = ['setup_logger', 'logger']
