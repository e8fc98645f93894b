import functools

import dask.array as da
import numpy as np
import pandas as pd
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ibdkit import count_call_alternate_alleles
from ibdkit.blocks import chunk_genotype_matrix
from ibdkit.genotype import Genotype
from ibdkit.stats.ibd import (
    ExtendedIBDInfo,
    IBDInfo,
    IBSExpectations,
    _bound,
    calculate_ibd_info,
    estimate_ibd,
    ibs_expectation_coefficients,
    ibs_expectations,
    ibs_expectations_for_genotypes,
    identity_by_descent,
    identity_by_descent_matrix,
    pairwise_ibs_counts,
)
from ibdkit.testing import (
    genotype_call_dataset_from_matrix,
    simulate_genotype_call_dataset,
)

# expected IBS sharing of a variant with 4 called alleles at frequency 0.5
HALF_MAF_EXPECTATIONS = IBSExpectations(1 / 3, 0.0, 2 / 3, 2 / 3, 1 / 3)


def ibs_counts_brute_force(calls):
    counts = {}
    for i in range(calls.shape[1]):
        for j in range(i + 1, calls.shape[1]):
            both = (calls[:, i] >= 0) & (calls[:, j] >= 0)
            d = np.abs(calls[both, i].astype(int) - calls[both, j].astype(int))
            counts[i, j] = ((d == 2).sum(), (d == 1).sum(), (d == 0).sum())
    return counts


def sorted_frame(df):
    return df.compute().sort_values(["i", "j"]).reset_index(drop=True)


def assert_expectations_close(actual, expected):
    np.testing.assert_allclose(
        [actual.E00, actual.E10, actual.E20, actual.E11, actual.E21, actual.E22],
        [
            expected.E00,
            expected.E10,
            expected.E20,
            expected.E11,
            expected.E21,
            expected.E22,
        ],
    )
    assert actual.count == expected.count


coefficient = st.one_of(st.integers(-1000, 1000).map(float), st.just(np.nan))
expectations = st.lists(
    st.lists(coefficient, min_size=5, max_size=5), max_size=3
).map(IBSExpectations.from_coefficients)


@given(expectations, expectations, expectations)
def test_ibs_expectations__join_is_associative(a, b, c):
    assert a.join(b.join(c)) == a.join(b).join(c)


@given(expectations, expectations)
def test_ibs_expectations__join_is_commutative(a, b):
    assert a.join(b) == b.join(a)


@given(expectations)
def test_ibs_expectations__join_identity(a):
    empty = IBSExpectations.empty()
    assert a.join(empty) == a
    assert empty.join(a) == a


def test_ibs_expectations__from_coefficients():
    ibse = IBSExpectations.from_coefficients(
        [[1.0, 2.0, 3.0, 4.0, 5.0], [np.nan, 0.0, 0.0, 0.0, 0.0], [1.0] * 5]
    )
    assert ibse == IBSExpectations(2.0, 3.0, 4.0, 5.0, 6.0, count=2)
    assert not IBSExpectations.from_coefficients([[np.nan] * 5]).is_valid


def test_ibs_expectations__nan_value_is_skipped():
    nan = IBSExpectations(np.nan, 0.0, 0.0, 0.0, 0.0)
    assert nan.has_nans
    assert HALF_MAF_EXPECTATIONS.join(nan) == HALF_MAF_EXPECTATIONS
    assert nan.join(HALF_MAF_EXPECTATIONS) == HALF_MAF_EXPECTATIONS


def test_ibs_expectations__normalized_and_scaled():
    total = IBSExpectations(2.0, 4.0, 6.0, 8.0, 10.0, count=2)
    assert total.normalized() == IBSExpectations(1.0, 2.0, 3.0, 4.0, 5.0, count=2)
    assert total.normalized().scaled(3) == IBSExpectations(
        3.0, 6.0, 9.0, 12.0, 15.0, 3.0, count=2
    )
    assert IBSExpectations.empty().normalized().has_nans


def test_ibs_expectations_for_genotypes__half_maf():
    genotypes = [Genotype.from_code(1), Genotype.from_code(1)]
    assert_expectations_close(
        ibs_expectations_for_genotypes(genotypes, maf=0.5), HALF_MAF_EXPECTATIONS
    )
    # two heterozygous calls give the same allele counts as a frequency of 0.5
    assert_expectations_close(
        ibs_expectations_for_genotypes(genotypes), HALF_MAF_EXPECTATIONS
    )


@pytest.mark.parametrize(
    "codes", [[0, 0, 0], [2, 2, -1], [-1, -1], [1]]
)
def test_ibs_expectations_for_genotypes__degenerate(codes):
    ibse = ibs_expectations_for_genotypes([Genotype.from_code(c) for c in codes])
    assert not ibse.is_valid
    assert ibse == IBSExpectations.empty()


def test_ibs_expectation_coefficients__sum_to_one():
    rs = np.random.RandomState(0)
    Na = 2.0 * rs.randint(10, 100, size=20)
    x = np.floor(Na * rs.uniform(0.1, 0.9, size=20))
    y = Na - x
    coefs = ibs_expectation_coefficients(Na, x, y, x / Na, y / Na)
    assert coefs.shape == (20, 5)
    np.testing.assert_allclose(coefs[:, 0] + coefs[:, 1] + coefs[:, 2], 1.0)
    np.testing.assert_allclose(coefs[:, 3] + coefs[:, 4], 1.0)


def test_ibs_expectations__matches_fold_over_variants():
    ds = simulate_genotype_call_dataset(n_variant=30, n_sample=8, missing_pct=0.1)
    calls = count_call_alternate_alleles(ds)["call_alternate_allele_count"].values
    expected = functools.reduce(
        IBSExpectations.join,
        (
            ibs_expectations_for_genotypes([Genotype.from_code(c) for c in row])
            for row in calls
        ),
        IBSExpectations.empty(),
    )
    assert expected.count > 0
    assert_expectations_close(ibs_expectations(ds, normalize=False), expected)
    assert_expectations_close(ibs_expectations(ds), expected.normalized())


def test_ibs_expectations__permutation_invariance():
    ds = simulate_genotype_call_dataset(n_variant=50, n_sample=10, seed=3)
    expected = ibs_expectations(ds)
    perm = np.random.RandomState(0).permutation(50)
    permuted = ds.isel(variants=perm).chunk({"variants": 7})
    assert_expectations_close(ibs_expectations(permuted), expected)


def test_ibs_expectations__variant_maf():
    ds = genotype_call_dataset_from_matrix(
        [[0, 1, 2, 0], [0, 1, 2, 0]], variant_maf=[0.5] * 4
    )
    ibse = ibs_expectations(ds, variant_maf="variant_maf")
    assert_expectations_close(
        ibse,
        IBSExpectations(1 / 3, 0.0, 2 / 3, 2 / 3, 1 / 3, count=4),
    )


def test_ibs_expectations__empty_dataset():
    ds = simulate_genotype_call_dataset(n_variant=5, n_sample=3)
    with pytest.raises(ValueError, match="at least one variant and one sample"):
        ibs_expectations(ds.isel(variants=slice(0, 0)))


@pytest.mark.parametrize("variant_maf", [None, "variant_maf"])
def test_ibs_expectations__invalid_codes(variant_maf):
    ds = genotype_call_dataset_from_matrix(
        [[0, 1, 2, 0], [1, 1, 0, 2], [2, 0, 1, 1]], variant_maf=[0.5] * 4
    )
    calls = ds.call_alternate_allele_count.values.copy()
    calls[0, 0] = 7
    ds["call_alternate_allele_count"] = (
        ds.call_alternate_allele_count.dims,
        calls,
    )
    with pytest.raises(ValueError, match="Invalid genotype codes"):
        ibs_expectations(ds, variant_maf=variant_maf)
    with pytest.raises(ValueError, match="Invalid genotype codes"):
        identity_by_descent_matrix(ds, variant_maf=variant_maf).compute()


def test_bound():
    Z0 = np.array([1.5, 0.5, -0.5, 0.5, 0.5, 0.2, -0.5])
    Z1 = np.array([-0.2, 1.2, 0.5, -0.5, 0.7, 0.3, 0.5])
    Z2 = np.array([-0.3, 2.0, 1.0, 1.0, -0.2, 0.5, 1.0])
    B0, B1, B2 = _bound(Z0, Z1, Z2)
    np.testing.assert_allclose(B0, [1, 0, 0, 1 / 3, 0.5 / 1.2, 0.2, 0])
    np.testing.assert_allclose(B1, [0, 1, 0.5 / 1.5, 0, 0.7 / 1.2, 0.3, 0.5 / 1.5])
    np.testing.assert_allclose(B2, [0, 0, 1 / 1.5, 2 / 3, 0, 0.5, 1 / 1.5])


def test_calculate_ibd_info__identical():
    info = calculate_ibd_info(0, 0, 4, HALF_MAF_EXPECTATIONS)
    assert isinstance(info, ExtendedIBDInfo)
    assert (info.ibs0, info.ibs1, info.ibs2) == (0, 0, 4)
    assert info.ibd.Z0 == pytest.approx(0)
    assert info.ibd.Z1 == pytest.approx(0)
    assert info.ibd.Z2 == pytest.approx(1)
    assert info.ibd.PI_HAT == pytest.approx(1)


def test_calculate_ibd_info__opposite_homozygotes():
    info = calculate_ibd_info(4, 0, 0, HALF_MAF_EXPECTATIONS)
    assert info.ibd == IBDInfo(1.0, 0.0, 0.0, 0.0)

    info = calculate_ibd_info(4, 0, 0, HALF_MAF_EXPECTATIONS, bounded=False)
    assert info.ibd.Z0 == pytest.approx(3)
    assert info.ibd.Z1 == pytest.approx(0)
    assert info.ibd.Z2 == pytest.approx(-2)
    assert info.ibd.PI_HAT == pytest.approx(-2)


def test_calculate_ibd_info__no_shared_calls():
    info = calculate_ibd_info(0, 0, 0, HALF_MAF_EXPECTATIONS)
    assert info.has_nans


def test_estimate_ibd__vectorized():
    n0, n1, n2 = [4, 0, 1], [0, 0, 2], [0, 4, 1]
    Z0, Z1, Z2, PI_HAT = estimate_ibd(n0, n1, n2, HALF_MAF_EXPECTATIONS)
    for k in range(3):
        info = calculate_ibd_info(n0[k], n1[k], n2[k], HALF_MAF_EXPECTATIONS)
        np.testing.assert_allclose(
            [Z0[k], Z1[k], Z2[k], PI_HAT[k]],
            [info.ibd.Z0, info.ibd.Z1, info.ibd.Z2, info.ibd.PI_HAT],
        )


def test_ibd_info__pointwise_minus():
    a = ExtendedIBDInfo(IBDInfo.from_z(0.5, 0.25, 0.25), 3, 2, 1)
    b = ExtendedIBDInfo(IBDInfo.from_z(0.25, 0.25, 0.5), 1, 1, 1)
    diff = a.pointwise_minus(b)
    assert diff.ibd == IBDInfo(0.25, 0.0, -0.25, -0.25)
    assert (diff.ibs0, diff.ibs1, diff.ibs2) == (2, 1, 0)
    assert not diff.has_nans


def test_pairwise_ibs_counts():
    rs = np.random.RandomState(2)
    calls = rs.randint(-1, 3, size=(9, 5)).astype(np.int8)
    counts = pairwise_ibs_counts(chunk_genotype_matrix(calls, 2), split_every=2)
    assert sorted(counts) == [(a, b) for a in range(3) for b in range(a, 3)]
    expected = ibs_counts_brute_force(calls)
    for (a, b), c in counts.items():
        c = c.compute()
        assert c.shape == (2, 2, 3)
        for s0 in range(2):
            for s1 in range(2):
                i, j = a * 2 + s0, b * 2 + s1
                if i < j < 5:
                    assert tuple(c[s0, s1]) == expected[i, j]


def test_pairwise_ibs_counts__non_square_blocks():
    blocks = da.zeros((4, 6), chunks=(2, 3), dtype=np.uint8)
    with pytest.raises(ValueError, match="Blocks must be square"):
        pairwise_ibs_counts(blocks)


def test_identity_by_descent__identical_samples():
    ds = genotype_call_dataset_from_matrix(
        [[0, 1, 2, 0], [0, 1, 2, 0]], variant_maf=[0.5] * 4
    )
    df = identity_by_descent(ds, variant_maf="variant_maf").compute()
    assert len(df) == 1
    row = df.iloc[0]
    assert (row.sample_id_0, row.sample_id_1) == ("0", "1")
    assert (row.IBS0, row.IBS1, row.IBS2) == (0, 0, 4)
    assert row.Z0 == pytest.approx(0)
    assert row.Z1 == pytest.approx(0)
    assert row.Z2 == pytest.approx(1)
    assert row.PI_HAT == pytest.approx(1)


def test_identity_by_descent__opposite_homozygotes():
    ds = genotype_call_dataset_from_matrix(
        [[0, 0, 0, 0], [2, 2, 2, 2]], variant_maf=[0.5] * 4
    )
    df = identity_by_descent(ds, variant_maf="variant_maf").compute()
    row = df.iloc[0]
    assert (row.IBS0, row.IBS1, row.IBS2) == (4, 0, 0)
    assert row.Z0 == pytest.approx(1)
    assert row.PI_HAT == pytest.approx(0)

    df = identity_by_descent(ds, variant_maf="variant_maf", bounded=False).compute()
    assert df.iloc[0].Z0 == pytest.approx(3)
    assert df.iloc[0].PI_HAT == pytest.approx(-2)


def test_identity_by_descent_matrix__block_boundary():
    ds = genotype_call_dataset_from_matrix(
        [[0, 1, 2, 1, 0], [1, 1, 2, 0, 0], [2, 0, 1, 1, -1]]
    )
    df = sorted_frame(identity_by_descent_matrix(ds, chunk_size=2))
    assert list(zip(df.i, df.j)) == [(0, 1), (0, 2), (1, 2)]
    expected = sorted_frame(identity_by_descent_matrix(ds))
    pd.testing.assert_frame_equal(df, expected)


@pytest.mark.parametrize("chunk_size", [1, 3, 4, 16])
@pytest.mark.parametrize("variant_chunks", [None, 5])
def test_identity_by_descent_matrix__ibs_counts(chunk_size, variant_chunks):
    ds = simulate_genotype_call_dataset(
        n_variant=23, n_sample=7, missing_pct=0.2, seed=4
    )
    if variant_chunks is not None:
        ds = ds.chunk({"variants": variant_chunks})
    calls = count_call_alternate_alleles(ds)["call_alternate_allele_count"].values
    df = sorted_frame(identity_by_descent_matrix(ds, chunk_size=chunk_size))
    expected = ibs_counts_brute_force(calls)
    assert len(df) == len(expected) == 21
    for row in df.itertuples():
        assert (row.IBS0, row.IBS1, row.IBS2) == expected[row.i, row.j]


def test_identity_by_descent_matrix__unique_pairs():
    ds = simulate_genotype_call_dataset(n_variant=10, n_sample=11)
    df = identity_by_descent_matrix(ds, chunk_size=3).compute()
    pairs = list(zip(df.i, df.j))
    assert len(pairs) == len(set(pairs)) == 55
    assert all(0 <= i < j < 11 for i, j in pairs)


def test_identity_by_descent_matrix__matches_calculate_ibd_info():
    ds = simulate_genotype_call_dataset(n_variant=40, n_sample=6, seed=5)
    ibse = ibs_expectations(ds)
    df = sorted_frame(identity_by_descent_matrix(ds, chunk_size=4))
    for row in df.itertuples():
        info = calculate_ibd_info(row.IBS0, row.IBS1, row.IBS2, ibse)
        np.testing.assert_allclose(
            [row.Z0, row.Z1, row.Z2, row.PI_HAT],
            [info.ibd.Z0, info.ibd.Z1, info.ibd.Z2, info.ibd.PI_HAT],
        )


@pytest.mark.parametrize("bounded", [True, False])
def test_identity_by_descent_matrix__probabilities(bounded):
    ds = simulate_genotype_call_dataset(n_variant=100, n_sample=12, seed=6)
    df = identity_by_descent_matrix(ds, bounded=bounded, chunk_size=5).compute()
    total = df.Z0 + df.Z1 + df.Z2
    np.testing.assert_allclose(total, 1.0)
    if bounded:
        assert (df.PI_HAT >= -1e-9).all()
        assert (df.PI_HAT <= 1 + 1e-9).all()
        assert ((df[["Z0", "Z1", "Z2"]] >= -1e-9).all()).all()


def test_identity_by_descent_matrix__dtypes():
    ds = simulate_genotype_call_dataset(n_variant=10, n_sample=4)
    ddf = identity_by_descent_matrix(ds, chunk_size=2)
    df = ddf.compute()
    assert list(df.columns) == [
        "i",
        "j",
        "Z0",
        "Z1",
        "Z2",
        "PI_HAT",
        "IBS0",
        "IBS1",
        "IBS2",
    ]
    assert df.i.dtype == df.IBS0.dtype == np.int64
    assert df.Z0.dtype == df.PI_HAT.dtype == np.float64


def test_identity_by_descent_matrix__no_shared_calls():
    ds = genotype_call_dataset_from_matrix(
        [[0, 1, -1, -1], [-1, -1, 1, 2], [1, 1, 2, 0]]
    )
    df = sorted_frame(identity_by_descent_matrix(ds))
    row = df.iloc[0]
    assert (row.i, row.j) == (0, 1)
    assert (row.IBS0, row.IBS1, row.IBS2) == (0, 0, 0)
    assert np.isnan(row.PI_HAT)


def test_identity_by_descent__call_genotype_only():
    ds = simulate_genotype_call_dataset(n_variant=20, n_sample=5, missing_pct=0.1)
    assert "call_alternate_allele_count" not in ds
    df = identity_by_descent(ds, chunk_size=2).compute()
    expected = identity_by_descent(count_call_alternate_alleles(ds)).compute()
    key = ["sample_id_0", "sample_id_1"]
    pd.testing.assert_frame_equal(
        df.sort_values(key).reset_index(drop=True),
        expected.sort_values(key).reset_index(drop=True),
    )


def test_identity_by_descent__sample_ids():
    ds = simulate_genotype_call_dataset(n_variant=20, n_sample=5)
    ids = identity_by_descent(ds, chunk_size=2).compute()
    matrix = sorted_frame(identity_by_descent_matrix(ds, chunk_size=2))
    ids = ids.sort_values(["sample_id_0", "sample_id_1"]).reset_index(drop=True)
    assert list(ids.columns[:2]) == ["sample_id_0", "sample_id_1"]
    assert list(ids.sample_id_0) == [f"S{i}" for i in matrix.i]
    assert list(ids.sample_id_1) == [f"S{j}" for j in matrix.j]
    np.testing.assert_allclose(ids.PI_HAT, matrix.PI_HAT)


@pytest.mark.parametrize(
    "min_pi_hat, max_pi_hat", [(None, None), (0.1, None), (None, 0.2), (0.05, 0.3)]
)
def test_identity_by_descent__pi_hat_thresholds(min_pi_hat, max_pi_hat):
    ds = simulate_genotype_call_dataset(n_variant=30, n_sample=10, seed=7)
    matrix = identity_by_descent_matrix(ds).compute()
    keep = np.ones(len(matrix), dtype=bool)
    if min_pi_hat is not None:
        keep &= (matrix.PI_HAT >= min_pi_hat).to_numpy()
    if max_pi_hat is not None:
        keep &= (matrix.PI_HAT <= max_pi_hat).to_numpy()
    df = identity_by_descent(
        ds, min_pi_hat=min_pi_hat, max_pi_hat=max_pi_hat, chunk_size=4
    ).compute()
    assert len(df) == keep.sum()
    if min_pi_hat is not None:
        assert (df.PI_HAT >= min_pi_hat).all()
    if max_pi_hat is not None:
        assert (df.PI_HAT <= max_pi_hat).all()


@pytest.mark.slow
@settings(deadline=None, max_examples=10)
@given(st.integers(2, 6), st.integers(1, 8), st.integers(1, 4), st.integers(0, 100))
def test_identity_by_descent_matrix__pair_counts(n_sample, n_variant, chunk_size, seed):
    ds = simulate_genotype_call_dataset(
        n_variant=n_variant, n_sample=n_sample, missing_pct=0.3, seed=seed
    )
    calls = count_call_alternate_alleles(ds)["call_alternate_allele_count"].values
    df = identity_by_descent_matrix(ds, chunk_size=chunk_size).compute()
    i, j = df.i.to_numpy(), df.j.to_numpy()
    both_called = (calls[:, i] >= 0) & (calls[:, j] >= 0)
    np.testing.assert_equal(
        (df.IBS0 + df.IBS1 + df.IBS2).to_numpy(), both_called.sum(axis=0)
    )


def test_identity_by_descent__errors():
    ds = simulate_genotype_call_dataset(n_variant=5, n_sample=3)
    with pytest.raises(ValueError, match="at least one variant and one sample"):
        identity_by_descent_matrix(ds.isel(samples=slice(0, 0)))
    with pytest.raises(ValueError, match="chunk_size must be positive"):
        identity_by_descent_matrix(ds, chunk_size=0)
    with pytest.raises(ValueError, match="variant_maf not present"):
        identity_by_descent_matrix(ds, variant_maf="variant_maf")
    with pytest.raises(ValueError, match="non-default name is missing"):
        identity_by_descent_matrix(ds, call_alternate_allele_count="calls")
