import pandas as pd
import pytest

from claims_fraud.errors import InvalidProportionError
from claims_fraud.splitting import split


def _frame(n):
    return pd.DataFrame({"claim_id": range(n), "fraud_reported": ["Y", "N"] * (n // 2) + ["N"] * (n % 2)})


@pytest.mark.parametrize("n", [1, 10, 37, 250])
@pytest.mark.parametrize("proportion", [0.1, 0.5, 0.7, 0.8, 0.95])
def test_every_row_lands_in_exactly_one_subset(n, proportion):
    df = _frame(n)

    first, second = split(df, proportion, seed=3)

    assert len(first) == round(proportion * n)
    assert len(first) + len(second) == n
    assert set(first["claim_id"]).isdisjoint(second["claim_id"])
    assert set(first["claim_id"]) | set(second["claim_id"]) == set(range(n))


def test_same_seed_same_partition():
    df = _frame(100)

    a1, b1 = split(df, 0.7, seed=52)
    a2, b2 = split(df, 0.7, seed=52)

    assert a1.index.tolist() == a2.index.tolist()
    assert b1.index.tolist() == b2.index.tolist()


def test_different_seed_changes_partition():
    df = _frame(100)

    a1, _ = split(df, 0.7, seed=52)
    a2, _ = split(df, 0.7, seed=53)

    assert a1.index.tolist() != a2.index.tolist()


def test_ten_claims_split_seven_three():
    df = pd.DataFrame({"claim_id": range(10), "fraud_reported": ["N"] * 7 + ["Y"] * 3})

    train, test = split(df, 0.7, seed=52)

    assert len(train) == 7
    assert len(test) == 3
    assert set(train.index).isdisjoint(test.index)


def test_subsets_keep_input_order():
    df = _frame(50)

    first, second = split(df, 0.6, seed=1)

    assert first.index.is_monotonic_increasing
    assert second.index.is_monotonic_increasing


@pytest.mark.parametrize("proportion", [0, 1, -0.5, 1.2])
def test_invalid_proportion(proportion):
    with pytest.raises(InvalidProportionError):
        split(_frame(10), proportion, seed=52)
