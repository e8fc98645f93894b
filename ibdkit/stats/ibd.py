import logging
from dataclasses import dataclass
from functools import reduce
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import dask
import dask.array as da
import dask.dataframe as dd
import numpy as np
import pandas as pd
from dask.dataframe import DataFrame
from dask.delayed import Delayed
from xarray import Dataset

from ibdkit import variables
from ibdkit.blocks import DEFAULT_CHUNK_SIZE, chunk_genotype_matrix
from ibdkit.genotype import (
    Genotype,
    count_call_alternate_alleles,
    count_reference_alleles,
    validate_genotype_codes,
)
from ibdkit.typing import ArrayLike
from ibdkit.utils import define_variable_if_absent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IBDInfo:
    """Probabilities that a pair of samples shares 0, 1 or 2 alleles
    identical by descent, and the resulting kinship estimate
    ``PI_HAT = Z1 / 2 + Z2``."""

    Z0: float
    Z1: float
    Z2: float
    PI_HAT: float

    @classmethod
    def from_z(cls, Z0: float, Z1: float, Z2: float) -> "IBDInfo":
        return cls(Z0, Z1, Z2, Z1 / 2 + Z2)

    def pointwise_minus(self, other: "IBDInfo") -> "IBDInfo":
        return IBDInfo(
            self.Z0 - other.Z0,
            self.Z1 - other.Z1,
            self.Z2 - other.Z2,
            self.PI_HAT - other.PI_HAT,
        )

    @property
    def has_nans(self) -> bool:
        return bool(np.isnan([self.Z0, self.Z1, self.Z2, self.PI_HAT]).any())


@dataclass(frozen=True)
class ExtendedIBDInfo:
    """IBD estimates of a pair of samples together with the number of
    variants at which the pair shares 0, 1 or 2 alleles identical by state."""

    ibd: IBDInfo
    ibs0: int
    ibs1: int
    ibs2: int

    def pointwise_minus(self, other: "ExtendedIBDInfo") -> "ExtendedIBDInfo":
        return ExtendedIBDInfo(
            self.ibd.pointwise_minus(other.ibd),
            self.ibs0 - other.ibs0,
            self.ibs1 - other.ibs1,
            self.ibs2 - other.ibs2,
        )

    @property
    def has_nans(self) -> bool:
        return self.ibd.has_nans


@dataclass(frozen=True)
class IBSExpectations:
    """Expected IBS sharing between two unrelated individuals.

    ``Eab`` is the probability of observing IBS state ``a`` given IBD
    state ``b`` (``E22`` is always 1). ``count`` is the number of variants
    summed into the value. Values form a commutative monoid under
    :meth:`join` whose identity is :meth:`empty`; a value without valid
    contributions (``count == 0``) or with a not-a-number coefficient is
    passed over by :meth:`join`.
    """

    E00: float
    E10: float
    E20: float
    E11: float
    E21: float
    E22: float = 1.0
    count: int = 1

    @classmethod
    def empty(cls) -> "IBSExpectations":
        return cls(0.0, 0.0, 0.0, 0.0, 0.0, count=0)

    @classmethod
    def from_coefficients(cls, coefficients: ArrayLike) -> "IBSExpectations":
        """Sum per-variant coefficients of shape (variants, 5), ordered
        E00, E10, E20, E11, E21, skipping every variant with a not-a-number
        coefficient.

        This is the fold of the per-variant values with :meth:`join`.
        """
        coefficients = np.asarray(coefficients, dtype=np.float64).reshape(-1, 5)
        valid = ~np.isnan(coefficients).any(axis=1)
        count = int(valid.sum())
        if count == 0:
            return cls.empty()
        total = coefficients[valid].sum(axis=0)
        return cls(*(float(t) for t in total), count=count)

    @property
    def has_nans(self) -> bool:
        return bool(np.isnan([self.E00, self.E10, self.E20, self.E11, self.E21]).any())

    @property
    def is_valid(self) -> bool:
        return self.count > 0 and not self.has_nans

    def join(self, other: "IBSExpectations") -> "IBSExpectations":
        if not self.is_valid:
            return other
        if not other.is_valid:
            return self
        return IBSExpectations(
            self.E00 + other.E00,
            self.E10 + other.E10,
            self.E20 + other.E20,
            self.E11 + other.E11,
            self.E21 + other.E21,
            count=self.count + other.count,
        )

    def normalized(self) -> "IBSExpectations":
        """Average of the summed coefficients over the contributing variants."""
        if self.count == 0:
            logger.warning(
                "No variant contributed to expected IBS sharing, IBD estimates will be NaN"
            )
            return IBSExpectations(*(np.nan,) * 5, E22=self.E22, count=0)
        n = self.count
        return IBSExpectations(
            self.E00 / n,
            self.E10 / n,
            self.E20 / n,
            self.E11 / n,
            self.E21 / n,
            self.E22,
            n,
        )

    def scaled(self, n: ArrayLike) -> "IBSExpectations":
        return IBSExpectations(
            self.E00 * n,
            self.E10 * n,
            self.E20 * n,
            self.E11 * n,
            self.E21 * n,
            self.E22 * n,
            self.count,
        )


def ibs_expectation_coefficients(
    Na: ArrayLike, x: ArrayLike, y: ArrayLike, p: ArrayLike, q: ArrayLike
) -> np.ndarray:
    """Expected IBS sharing of each variant between two unrelated individuals.

    Alleles are drawn without replacement from the ``Na`` observed allele
    copies, ``x`` of which are reference (frequency ``p``) and ``y``
    alternate (frequency ``q``).

    Returns
    -------
    Array of shape (variants, 5) holding E00, E10, E20, E11 and E21.
    Degenerate variants (monomorphic, or with too few called alleles)
    produce not-a-number values.
    """
    Na, x, y, p, q = (np.asarray(a, dtype=np.float64) for a in (Na, x, y, p, q))
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        # corrections for drawing three or four alleles from the finite pool
        c3 = Na / (Na - 1) * Na / (Na - 2)
        c4 = c3 * Na / (Na - 3)
        x1, x2, x3 = (x - 1) / x, (x - 2) / x, (x - 3) / x
        y1, y2, y3 = (y - 1) / y, (y - 2) / y, (y - 3) / y

        a00 = 2 * p**2 * q**2 * (x1 * y1 * c4)
        a10 = 4 * p**3 * q * (x1 * x2 * c4) + 4 * p * q**3 * (y1 * y2 * c4)
        a20 = (
            q**4 * (y1 * y2 * y3 * c4)
            + p**4 * (x1 * x2 * x3 * c4)
            + 4 * p**2 * q**2 * (x1 * y1 * c4)
        )
        a11 = 2 * p**2 * q * (x1 * c3) + 2 * p * q**2 * (y1 * c3)
        a21 = (
            p**3 * (x1 * x2 * c3)
            + q**3 * (y1 * y2 * c3)
            + p**2 * q * (x1 * c3)
            + p * q**2 * (y1 * c3)
        )
    return np.stack([a00, a10, a20, a11, a21], axis=-1)


def _ibs_expectations_of_block(
    n_called: ArrayLike, n_ref: ArrayLike, maf: Optional[ArrayLike] = None
) -> IBSExpectations:
    Na = 2.0 * np.asarray(n_called, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        if maf is None:
            x = np.asarray(n_ref, dtype=np.float64)
            y = Na - x
            p = x / Na
            q = y / Na
        else:
            q = np.asarray(maf, dtype=np.float64)
            p = 1 - q
            x = Na * p
            y = Na * q
    return IBSExpectations.from_coefficients(
        ibs_expectation_coefficients(Na, x, y, p, q)
    )


def ibs_expectations_for_genotypes(
    genotypes: Iterable[Genotype], maf: Optional[float] = None
) -> IBSExpectations:
    """Expected IBS sharing at a single variant.

    Parameters
    ----------
    genotypes
        The calls of every sample at the variant.
    maf
        Minor (alternate) allele frequency of the variant. If None, the
        frequency is estimated from the reference alleles of the called
        genotypes.

    Returns
    -------
    The expectations of the variant, or :meth:`IBSExpectations.empty` if
    the variant is degenerate.
    """
    genotypes = list(genotypes)
    n_called = sum(g.is_called for g in genotypes)
    n_ref = sum(g.count_reference_alleles() for g in genotypes)
    return _ibs_expectations_of_block(
        [n_called], [n_ref], None if maf is None else [maf]
    )


def _ibs_expectations_of_calls(
    calls: da.Array, maf: Optional[da.Array] = None
) -> Delayed:
    """Fold the expectations of every variant chunk into a genome-wide total."""
    calls = calls.map_blocks(validate_genotype_codes, dtype=calls.dtype)
    n_called = (calls >= 0).sum(axis=1)
    n_ref = count_reference_alleles(calls).sum(axis=1)
    n_called_parts = n_called.to_delayed().ravel()
    n_ref_parts = n_ref.to_delayed().ravel()
    if maf is None:
        maf_parts: List[Optional[Delayed]] = [None] * len(n_called_parts)
    else:
        maf_parts = list(maf.rechunk(n_called.chunks).to_delayed().ravel())
    partials = [
        dask.delayed(_ibs_expectations_of_block, pure=True)(c, r, f)
        for c, r, f in zip(n_called_parts, n_ref_parts, maf_parts)
    ]
    return dask.delayed(reduce, pure=True)(
        IBSExpectations.join, partials, IBSExpectations.empty()
    )


def _calls_and_maf(
    ds: Dataset,
    call_alternate_allele_count: Hashable,
    call_genotype: Hashable,
    variant_maf: Optional[Hashable],
) -> Tuple[da.Array, Optional[da.Array]]:
    ds = define_variable_if_absent(
        ds,
        variables.call_alternate_allele_count,
        call_alternate_allele_count,
        count_call_alternate_alleles,
        call_genotype=call_genotype,
    )
    variables.validate(
        ds,
        {call_alternate_allele_count: variables.call_alternate_allele_count_spec},
    )
    calls = da.asarray(ds[call_alternate_allele_count].data)
    if calls.shape[0] == 0 or calls.shape[1] == 0:
        raise ValueError(
            f"Dataset must contain at least one variant and one sample, got shape {calls.shape}"
        )
    maf = None
    if variant_maf is not None:
        variables.validate(ds, {variant_maf: variables.variant_maf_spec})
        maf = da.asarray(ds[variant_maf].data)
    return calls, maf


def ibs_expectations(
    ds: Dataset,
    *,
    call_alternate_allele_count: Hashable = variables.call_alternate_allele_count,
    call_genotype: Hashable = variables.call_genotype,
    variant_maf: Optional[Hashable] = None,
    normalize: bool = True,
) -> IBSExpectations:
    """Estimate genome-wide expected IBS sharing between unrelated individuals.

    Parameters
    ----------
    ds
        Dataset containing diploid, biallelic genotype calls.
    call_alternate_allele_count
        Input variable name holding call_alternate_allele_count as defined by
        :data:`ibdkit.variables.call_alternate_allele_count_spec`.
        If the variable is not present in ``ds``, it will be computed
        using :func:`ibdkit.count_call_alternate_alleles`.
    call_genotype
        Input variable name holding call_genotype as defined by
        :data:`ibdkit.variables.call_genotype_spec`. Only used to compute
        ``call_alternate_allele_count`` when it is absent.
    variant_maf
        Optional input variable name holding precomputed minor allele
        frequencies as defined by :data:`ibdkit.variables.variant_maf_spec`.
        If None, frequencies are estimated from the called genotypes.
    normalize
        If True (the default), return the average over the contributing
        variants rather than their sum.

    Returns
    -------
    The genome-wide :class:`IBSExpectations`. Degenerate variants are
    excluded and ``count`` holds the number of contributing variants.
    """
    calls, maf = _calls_and_maf(
        ds, call_alternate_allele_count, call_genotype, variant_maf
    )
    total = _ibs_expectations_of_calls(calls, maf).compute()
    logger.info(
        f"{total.count} of {calls.shape[0]} variants contributed to expected IBS sharing"
    )
    return total.normalized() if normalize else total


def pairwise_ibs_counts(
    blocks: da.Array, split_every: Optional[int] = None
) -> Dict[Tuple[int, int], da.Array]:
    """Count IBS states for every pair of samples from blocks of encoded calls.

    Parameters
    ----------
    blocks
        Encoded calls as produced by :func:`ibdkit.blocks.chunk_genotype_matrix`,
        chunked in square blocks.
    split_every
        Depth of the recursive aggregation of the per variant block counts,
        passed to dask. Omit to let dask decide.

    Returns
    -------
    A mapping from each pair of sample block indices ``(a, b)`` with
    ``b >= a`` to a (chunk_size, chunk_size, 3) array counting, for every
    sample of block ``a`` and every sample of block ``b``, the variants at
    which they share 0, 1 and 2 alleles identical by state.
    """
    from .ibd_numba_fns import ibs_block_counts

    sizes = set(blocks.chunks[0]) | set(blocks.chunks[1])
    if len(sizes) != 1:
        raise ValueError(
            f"Blocks must be square with a uniform size, got chunks {blocks.chunks}"
        )
    chunk_size = sizes.pop()
    n_variant_blocks, n_sample_blocks = blocks.numblocks
    logger.info(
        f"Counting IBS states for {n_sample_blocks * (n_sample_blocks + 1) // 2} "
        f"sample block pairs over {n_variant_blocks} variant blocks"
    )
    # use numpy array to avoid dask task dependencies between chunks
    states = np.empty(3, dtype=np.int64)
    counts = {}
    for a in range(n_sample_blocks):
        # blocks below the diagonal mirror those above it
        for b in range(a, n_sample_blocks):
            parts = [
                da.map_blocks(
                    ibs_block_counts,
                    blocks.blocks[v, a],
                    blocks.blocks[v, b],
                    states,
                    new_axis=2,
                    chunks=((chunk_size,), (chunk_size,), (3,)),
                    dtype=np.int64,
                    meta=np.empty((0, 0, 0), dtype=np.int64),
                )
                for v in range(n_variant_blocks)
            ]
            counts[a, b] = da.stack(parts).sum(axis=0, split_every=split_every)
    return counts


def _bound(
    Z0: np.ndarray, Z1: np.ndarray, Z2: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    with np.errstate(divide="ignore", invalid="ignore"):
        S12, S02, S01 = Z1 + Z2, Z0 + Z2, Z0 + Z1
        # first matching condition wins
        conditions = [Z0 > 1, Z1 > 1, Z2 > 1, Z0 < 0, Z1 < 0, Z2 < 0]
        B0 = np.select(conditions, [1.0, 0.0, 0.0, 0.0, Z0 / S02, Z0 / S01], Z0)
        B1 = np.select(conditions, [0.0, 1.0, 0.0, Z1 / S12, 0.0, Z1 / S01], Z1)
        B2 = np.select(conditions, [0.0, 0.0, 1.0, Z2 / S12, Z2 / S02, 0.0], Z2)
    return B0, B1, B2


def estimate_ibd(
    n0: ArrayLike,
    n1: ArrayLike,
    n2: ArrayLike,
    ibse: IBSExpectations,
    bounded: bool = True,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Method of moments estimates of IBD sharing from IBS counts.

    Parameters
    ----------
    n0, n1, n2
        Number of variants at which each pair shares 0, 1 and 2 alleles
        identical by state.
    ibse
        Normalized genome-wide expected IBS sharing.
    bounded
        If True (the default), project the estimates onto the probability
        simplex, otherwise return them unchanged (possibly outside [0, 1]).

    Returns
    -------
    Arrays Z0, Z1, Z2 and PI_HAT with the shape of the counts.
    """
    n0, n1, n2 = (np.atleast_1d(np.asarray(n, dtype=np.float64)) for n in (n0, n1, n2))
    e = ibse.scaled(n0 + n1 + n2)
    with np.errstate(divide="ignore", invalid="ignore"):
        Z0 = n0 / e.E00
        Z1 = (n1 - Z0 * e.E10) / e.E11
        Z2 = (n2 - Z0 * e.E20 - Z1 * e.E21) / e.E22
    if bounded:
        Z0, Z1, Z2 = _bound(Z0, Z1, Z2)
    return Z0, Z1, Z2, Z1 / 2 + Z2


def calculate_ibd_info(
    n0: int, n1: int, n2: int, ibse: IBSExpectations, bounded: bool = True
) -> ExtendedIBDInfo:
    """IBD estimates for a single pair of samples, see :func:`estimate_ibd`."""
    Z0, Z1, Z2, _ = (float(z[0]) for z in estimate_ibd(n0, n1, n2, ibse, bounded))
    return ExtendedIBDInfo(IBDInfo.from_z(Z0, Z1, Z2), n0, n1, n2)


_IBD_COLUMNS = [
    ("Z0", np.float64),
    ("Z1", np.float64),
    ("Z2", np.float64),
    ("PI_HAT", np.float64),
    ("IBS0", np.int64),
    ("IBS1", np.int64),
    ("IBS2", np.int64),
]


def _ibd_block_frame(
    counts: np.ndarray,
    ibse: IBSExpectations,
    sample_block0: int,
    sample_block1: int,
    chunk_size: int,
    n_samples: int,
    bounded: bool,
) -> pd.DataFrame:
    rows = sample_block0 * chunk_size + np.arange(counts.shape[0], dtype=np.int64)
    cols = sample_block1 * chunk_size + np.arange(counts.shape[1], dtype=np.int64)
    i, j = np.meshgrid(rows, cols, indexing="ij")
    # drop self pairs, mirrored pairs and padding beyond the last sample
    keep = (i < j) & (j < n_samples)
    n0, n1, n2 = (counts[..., k][keep].astype(np.int64) for k in range(3))
    Z0, Z1, Z2, PI_HAT = estimate_ibd(n0, n1, n2, ibse, bounded)
    return pd.DataFrame(
        {
            "i": i[keep],
            "j": j[keep],
            "Z0": Z0,
            "Z1": Z1,
            "Z2": Z2,
            "PI_HAT": PI_HAT,
            "IBS0": n0,
            "IBS1": n1,
            "IBS2": n2,
        }
    )


def identity_by_descent_matrix(
    ds: Dataset,
    *,
    call_alternate_allele_count: Hashable = variables.call_alternate_allele_count,
    call_genotype: Hashable = variables.call_genotype,
    variant_maf: Optional[Hashable] = None,
    bounded: bool = True,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    split_every: Optional[int] = None,
) -> DataFrame:
    """Estimate identity by descent (IBD) sharing between all pairs of samples.

    IBD sharing is estimated with the method of moments used by PLINK's
    ``--genome``: the number of variants at which a pair shares 0, 1 or 2
    alleles identical by state (IBS) is compared with the sharing expected
    between unrelated individuals given the allele frequencies.

    Calls are rearranged into square blocks of ``chunk_size`` variants by
    ``chunk_size`` samples, IBS states are counted for every pair of sample
    blocks (on or above the diagonal) covering the same variants, and counts
    are summed over all variant blocks. The memory needed by each task
    depends on ``chunk_size`` only.

    Parameters
    ----------
    ds
        Dataset containing diploid, biallelic genotype calls.
    call_alternate_allele_count
        Input variable name holding call_alternate_allele_count as defined by
        :data:`ibdkit.variables.call_alternate_allele_count_spec`.
        If the variable is not present in ``ds``, it will be computed
        using :func:`ibdkit.count_call_alternate_alleles`.
    call_genotype
        Input variable name holding call_genotype as defined by
        :data:`ibdkit.variables.call_genotype_spec`. Only used to compute
        ``call_alternate_allele_count`` when it is absent.
    variant_maf
        Optional input variable name holding precomputed minor allele
        frequencies as defined by :data:`ibdkit.variables.variant_maf_spec`.
        If None, frequencies are estimated from the called genotypes.
    bounded
        If True (the default), constrain Z0, Z1 and Z2 to a probability
        distribution. Otherwise the raw estimates are returned and may
        fall outside [0, 1].
    chunk_size
        Number of variants and samples in each block.
    split_every
        Depth of the recursive aggregation of IBS counts over variant
        blocks, passed to dask. Omit to let dask decide.

    Returns
    -------
    A dataframe with one row for each pair of samples ``i < j``. Fields:

    - ``i``, ``j``: Sample indices
    - ``Z0``, ``Z1``, ``Z2``: Probabilities of sharing 0, 1 and 2 alleles IBD
    - ``PI_HAT``: Proportion IBD, ``Z1 / 2 + Z2``
    - ``IBS0``, ``IBS1``, ``IBS2``: Number of variants at which the pair
      shares 0, 1 and 2 alleles IBS. Variants with a missing call in either
      sample are not counted.

    Warnings
    --------
    This function is only applicable to diploid, biallelic datasets.

    Raises
    ------
    ValueError
        If the dataset is not diploid or biallelic, is missing a required
        variable, or has no variants or samples.
    ValueError
        If ``chunk_size`` is not positive.
    """
    calls, maf = _calls_and_maf(
        ds, call_alternate_allele_count, call_genotype, variant_maf
    )
    n_samples = calls.shape[1]
    ibse = dask.delayed(IBSExpectations.normalized, pure=True)(
        _ibs_expectations_of_calls(calls, maf)
    )
    blocks = chunk_genotype_matrix(calls, chunk_size)
    counts = pairwise_ibs_counts(blocks, split_every=split_every)
    parts = [
        dask.delayed(_ibd_block_frame, pure=True)(
            c.to_delayed().ravel()[0], ibse, a, b, chunk_size, n_samples, bounded
        )
        for (a, b), c in counts.items()
    ]
    meta = [("i", np.int64), ("j", np.int64)] + _IBD_COLUMNS
    return dd.from_delayed(parts, meta=meta)


def _map_sample_ids(
    df: pd.DataFrame,
    sample_ids: List[str],
    min_pi_hat: Optional[float],
    max_pi_hat: Optional[float],
) -> pd.DataFrame:
    keep = np.ones(len(df), dtype=bool)
    if min_pi_hat is not None:
        keep &= (df["PI_HAT"] >= min_pi_hat).to_numpy()
    if max_pi_hat is not None:
        keep &= (df["PI_HAT"] <= max_pi_hat).to_numpy()
    df = df[keep]
    ids = np.asarray(sample_ids, dtype=object)
    pairs = pd.DataFrame(
        {
            "sample_id_0": ids[df["i"].to_numpy()],
            "sample_id_1": ids[df["j"].to_numpy()],
        },
        index=df.index,
    )
    return pd.concat([pairs, df[[c for c, _ in _IBD_COLUMNS]]], axis=1)


def identity_by_descent(
    ds: Dataset,
    *,
    call_alternate_allele_count: Hashable = variables.call_alternate_allele_count,
    call_genotype: Hashable = variables.call_genotype,
    variant_maf: Optional[Hashable] = None,
    sample_id: Hashable = variables.sample_id,
    bounded: bool = True,
    min_pi_hat: Optional[float] = None,
    max_pi_hat: Optional[float] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    split_every: Optional[int] = None,
) -> DataFrame:
    """Estimate identity by descent (IBD) sharing between all pairs of samples,
    identified by their sample ids.

    See :func:`identity_by_descent_matrix` for the estimation method and
    the shared parameters.

    Parameters
    ----------
    ds
        Dataset containing diploid, biallelic genotype calls.
    sample_id
        Input variable name holding sample_id as defined by
        :data:`ibdkit.variables.sample_id_spec`.
    min_pi_hat
        If given, only pairs with ``PI_HAT >= min_pi_hat`` are returned.
    max_pi_hat
        If given, only pairs with ``PI_HAT <= max_pi_hat`` are returned.

    Returns
    -------
    A dataframe with one row for each pair of samples passing the
    thresholds, with fields ``sample_id_0`` and ``sample_id_1`` followed by
    the estimates of :func:`identity_by_descent_matrix`. Pairs without an
    estimate (NaN ``PI_HAT``) never pass a threshold.
    """
    variables.validate(ds, {sample_id: variables.sample_id_spec})
    sample_ids = np.asarray(ds[sample_id].values)
    if sample_ids.dtype.kind == "S":
        sample_ids = sample_ids.astype(str)
    df = identity_by_descent_matrix(
        ds,
        call_alternate_allele_count=call_alternate_allele_count,
        call_genotype=call_genotype,
        variant_maf=variant_maf,
        bounded=bounded,
        chunk_size=chunk_size,
        split_every=split_every,
    )
    meta = [("sample_id_0", object), ("sample_id_1", object)] + _IBD_COLUMNS
    return df.map_partitions(
        _map_sample_ids, sample_ids.tolist(), min_pi_hat, max_pi_hat, meta=meta
    )
