from typing import Tuple

import numpy as np
import pandas as pd

from .errors import InvalidProportionError


def split(
    df: pd.DataFrame, proportion: float, seed: int
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Partition rows with a seeded permutation.

    The first ``round(proportion * n)`` permuted positions go to the first
    subset, the rest to the second. Both subsets keep the input row order.
    """
    if not 0 < proportion < 1:
        raise InvalidProportionError(f"proportion must be in (0, 1), got {proportion!r}")

    n = len(df)
    order = np.random.default_rng(seed).permutation(n)
    n_first = int(round(proportion * n))

    first = np.sort(order[:n_first])
    second = np.sort(order[n_first:])
    return df.iloc[first], df.iloc[second]
