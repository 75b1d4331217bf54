"""Per-user LinUCB state and the rank-one online update."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

import numpy as np

from ..errors import DimensionMismatch
from .utils import (
    ensure_1d,
    gauss_jordan_inverse,
    identity_matrix,
    matrix_add,
    matrix_vector_multiply,
    outer_product,
    sherman_morrison_update,
    vector_add,
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class LinUCBModel:
    """Covariance ``A``, reward sum ``b`` and the derived ``theta``/``a_inverse``."""

    A: np.ndarray
    b: np.ndarray
    theta: np.ndarray
    a_inverse: np.ndarray
    updated_at: str | None = None
    update_count: int = 0
    updates_since_refresh: int = 0
    low_confidence: bool = False
    # Bumped by the store on every write; used for conditional writes.
    version: int = 0

    @classmethod
    def identity(cls, dim: int) -> "LinUCBModel":
        return cls(
            A=identity_matrix(dim),
            b=np.zeros(dim),
            theta=np.zeros(dim),
            a_inverse=identity_matrix(dim),
            updated_at=_utc_now(),
        )

    @property
    def dim(self) -> int:
        return int(self.b.shape[0])

    def copy(self) -> "LinUCBModel":
        return LinUCBModel(
            A=self.A.copy(),
            b=self.b.copy(),
            theta=self.theta.copy(),
            a_inverse=self.a_inverse.copy(),
            updated_at=self.updated_at,
            update_count=self.update_count,
            updates_since_refresh=self.updates_since_refresh,
            low_confidence=self.low_confidence,
            version=self.version,
        )

    def updated(
        self, features: Sequence[float], reward: float, refresh_interval: int = 0
    ) -> "LinUCBModel":
        """Return a new model with one observation folded in.

        ``a_inverse`` is maintained by Sherman-Morrison and recomputed from
        ``A`` every ``refresh_interval`` updates; 0 means always recompute.
        """

        x = ensure_1d(features)
        if x.shape[0] != self.dim:
            raise DimensionMismatch(
                f"Feature dimension {x.shape[0]} mismatched with model dimension {self.dim}",
                expected=self.dim,
                actual=x.shape[0],
            )

        new_a = matrix_add(self.A, outer_product(x, x))
        new_b = vector_add(self.b, float(reward) * x)

        since_refresh = self.updates_since_refresh + 1
        low_confidence = self.low_confidence
        if refresh_interval <= 0 or since_refresh >= refresh_interval or self.low_confidence:
            result = gauss_jordan_inverse(new_a)
            new_inverse = result.inverse
            low_confidence = not result.stable
            since_refresh = 0
        else:
            new_inverse = sherman_morrison_update(self.a_inverse, x)

        return LinUCBModel(
            A=new_a,
            b=new_b,
            theta=matrix_vector_multiply(new_inverse, new_b),
            a_inverse=new_inverse,
            updated_at=_utc_now(),
            update_count=self.update_count + 1,
            updates_since_refresh=since_refresh,
            low_confidence=low_confidence,
            version=self.version,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "A": self.A.tolist(),
            "b": self.b.tolist(),
            "theta": self.theta.tolist(),
            "A_inverse": self.a_inverse.tolist(),
            "updated_at": self.updated_at,
            "update_count": self.update_count,
            "updates_since_refresh": self.updates_since_refresh,
            "low_confidence": self.low_confidence,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "LinUCBModel":
        A = np.asarray(payload["A"], dtype=float)
        b = np.asarray(payload["b"], dtype=float)
        theta = np.asarray(payload["theta"], dtype=float)
        a_inverse = np.asarray(payload["A_inverse"], dtype=float)
        dim = b.shape[0]
        if A.shape != (dim, dim) or a_inverse.shape != (dim, dim) or theta.shape != (dim,):
            raise DimensionMismatch(
                "Stored model matrices do not share one dimension",
                expected=dim,
                actual={"A": A.shape, "theta": theta.shape, "A_inverse": a_inverse.shape},
            )
        return cls(
            A=A,
            b=b,
            theta=theta,
            a_inverse=a_inverse,
            updated_at=payload.get("updated_at"),
            update_count=int(payload.get("update_count", 0)),
            updates_since_refresh=int(payload.get("updates_since_refresh", 0)),
            low_confidence=bool(payload.get("low_confidence", False)),
            version=int(payload.get("version", 0)),
        )
