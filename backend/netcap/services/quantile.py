import math
from typing import Iterable, Optional

from netcap.services.headroom import finite


def quantile(values: Iterable, q: float) -> Optional[float]:
    """Linear-interpolated order statistic; None when there is no finite sample."""
    s = sorted(v for v in (finite(x) for x in values) if v is not None)
    if not s:
        return None
    q = finite(q)
    if q is None:
        return None
    if q <= 0:
        return s[0]
    if q >= 1:
        return s[-1]
    k = (len(s) - 1) * q
    f = math.floor(k)
    c = math.ceil(k)
    if f == c:
        return s[int(k)]
    return s[f] * (c - k) + s[c] * (k - f)


def lower_median(values: Iterable) -> Optional[float]:
    """Median that picks the lower middle element for even-sized input."""
    s = sorted(v for v in (finite(x) for x in values) if v is not None)
    if not s:
        return None
    return s[(len(s) - 1) // 2]
