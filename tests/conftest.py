"""
Pytest Fixtures
---------------
Shared resources for testing.
- random_walk: deterministic 300-point price series.
- price_csv: the same series on disk with ISO-8601 timestamps.
- base_config: path to the shipped configs/base.yaml.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from tests.utils import make_series

ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def random_walk():
    rng = np.random.default_rng(42)
    prices = 100.0 * np.exp(rng.normal(0, 0.01, size=300).cumsum())
    return make_series(prices)


@pytest.fixture
def price_csv(tmp_path: Path, random_walk) -> Path:
    df = pd.DataFrame(
        {
            "timestamp": pd.to_datetime([p.date for p in random_walk], unit="ms", utc=True),
            "price": [p.price for p in random_walk],
        }
    )
    p = tmp_path / "prices.csv"
    df.to_csv(p, index=False)
    return p


@pytest.fixture
def base_config() -> Path:
    return ROOT / "configs" / "base.yaml"
