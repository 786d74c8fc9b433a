"""IO 모듈"""

from .exporter import ResultExporter

__all__ = ['ResultExporter']
