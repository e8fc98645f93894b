"""Diploid biallelic genotype calls.

A call is stored as the number of alternate alleles it carries (0, 1 or 2),
with -1 standing for a missing call. The :class:`Genotype` class models a
single call, the array functions below work on whole call matrices.
"""
from dataclasses import dataclass
from typing import Hashable, Optional, Tuple

import dask.array as da
import numpy as np
from xarray import Dataset

from . import variables
from .typing import ArrayLike
from .utils import conditional_merge_datasets, create_dataset

MISSING = -1
GENOTYPE_CODES = (MISSING, 0, 1, 2)

_ALLELE_PAIRS = {0: (0, 0), 1: (0, 1), 2: (1, 1)}


@dataclass(frozen=True)
class Genotype:
    """A diploid biallelic genotype call.

    ``alt_count`` is the number of alternate alleles in the call, or
    ``None`` when the call is missing.
    """

    alt_count: Optional[int]

    def __post_init__(self):
        if self.alt_count is not None and self.alt_count not in _ALLELE_PAIRS:
            raise ValueError(
                f"Invalid alternate allele count {self.alt_count}, expected 0, 1 or 2"
            )

    @classmethod
    def from_code(cls, code: int) -> "Genotype":
        """Decode an integer genotype code (-1 for missing, else 0, 1 or 2)."""
        if code not in GENOTYPE_CODES:
            raise ValueError(
                f"Invalid genotype code {code}, expected one of {GENOTYPE_CODES}"
            )
        return cls(None if code == MISSING else int(code))

    @property
    def is_called(self) -> bool:
        return self.alt_count is not None

    @property
    def code(self) -> int:
        return MISSING if self.alt_count is None else self.alt_count

    def allele_pair(self) -> Optional[Tuple[int, int]]:
        """The unordered pair of allele indices (0 for the reference,
        1 for the alternate allele) or None for a missing call."""
        if self.alt_count is None:
            return None
        return _ALLELE_PAIRS[self.alt_count]

    def count_reference_alleles(self) -> int:
        pair = self.allele_pair()
        if pair is None:
            return 0
        return sum(a == 0 for a in pair)


def validate_genotype_codes(codes: ArrayLike) -> ArrayLike:
    """Raise a ValueError if any genotype code is not one of -1, 0, 1 or 2.

    Returns the codes unchanged so the check can be chained.
    """
    codes = np.asarray(codes)
    invalid = (codes < MISSING) | (codes > 2)
    if invalid.any():
        bad = np.unique(codes[invalid])
        raise ValueError(
            f"Invalid genotype codes {bad.tolist()}, expected one of {GENOTYPE_CODES}"
        )
    return codes


def count_reference_alleles(codes: ArrayLike) -> ArrayLike:
    """Number of reference alleles in each call, 0 for missing calls."""
    return np.where(codes >= 0, 2 - codes, 0)


def genotype_codes_to_alleles(codes: ArrayLike) -> np.ndarray:
    """Convert genotype codes to allele indices with a trailing ploidy
    dimension of size 2. Missing calls have both alleles set to -1."""
    codes = validate_genotype_codes(codes)
    alleles = np.stack([codes >= 2, codes >= 1], axis=-1).astype(np.int8)
    alleles[codes == MISSING] = MISSING
    return alleles


def count_call_alternate_alleles(
    ds: Dataset,
    *,
    call_genotype: Hashable = variables.call_genotype,
    merge: bool = True,
) -> Dataset:
    """Compute the number of alternate alleles in each call genotype.

    Parameters
    ----------
    ds
        Dataset containing diploid, biallelic genotype calls.
    call_genotype
        Input variable name holding call_genotype as defined by
        :data:`ibdkit.variables.call_genotype_spec`.
        Must be present in ``ds``.
    merge
        If True (the default), merge the input dataset and the computed
        output variables into a single dataset, otherwise return only
        the computed output variables.

    Returns
    -------
    A dataset containing :data:`ibdkit.variables.call_alternate_allele_count_spec`
    with shape (variants, samples). A call with any missing allele is
    reported as missing (-1).

    Raises
    ------
    ValueError
        If the dataset is not diploid or not biallelic.
    """
    if "ploidy" in ds.dims and ds.sizes["ploidy"] != 2:
        raise ValueError("IBD estimation only works for diploid genotypes")
    if "alleles" in ds.dims and ds.sizes["alleles"] != 2:
        raise ValueError("IBD estimation only works for biallelic genotypes")
    variables.validate(ds, {call_genotype: variables.call_genotype_spec})
    G = da.asarray(ds[call_genotype].data)
    missing = (G < 0).any(axis=-1)
    ac = da.where(missing, MISSING, G.sum(axis=-1)).astype(np.int8)
    new_ds = create_dataset(
        {variables.call_alternate_allele_count: (("variants", "samples"), ac)}
    )
    return conditional_merge_datasets(ds, new_ds, merge)
