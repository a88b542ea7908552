from .resolver import DetailResolver, DetailSource
from .types import DetailRecord, ResultKind, ResultRef

__all__ = ["DetailRecord", "DetailResolver", "DetailSource", "ResultKind", "ResultRef"]
