from __future__ import annotations

from typing import Any, Optional

from .acuity import AcuitySession
from .color import ColorVisionSession
from .contrast import ContrastSession
from .session import TestSession
from .types import TestKind


def create_session(kind: TestKind, *, density: Optional[float] = None, **options: Any) -> TestSession:
    """Build a ready session of the requested kind; ``density`` is only used by acuity."""
    kind = TestKind(kind)
    if kind is TestKind.LETTER_ACUITY:
        return AcuitySession(density, **options)
    if kind.is_contrast:
        return ContrastSession(kind, **options)
    return ColorVisionSession(**options)
