from typing import Optional

import numpy as np
from xarray import Dataset

from ibdkit.typing import ArrayLike

from .genotype import genotype_codes_to_alleles, validate_genotype_codes
from .model import create_genotype_call_dataset
from .utils import split_array_chunks


def simulate_genotype_call_dataset(
    n_variant: int,
    n_sample: int,
    n_contig: int = 1,
    seed: Optional[int] = 0,
    missing_pct: Optional[float] = None,
    phased: Optional[bool] = None,
) -> Dataset:
    """Simulate diploid, biallelic genotype calls and variant/sample data.

    Note that the data simulated by this function has no
    biological interpretation: alleles are drawn independently and
    uniformly, so every pair of samples looks unrelated.

    Parameters
    ----------
    n_variant
        Number of variants to simulate
    n_sample
        Number of samples to simulate
    n_contig
        optional
        Number of contigs to partition variants with,
        controlling values in ``variant_contig``. Values
        will all be 0 by default when ``n_contig`` is 1.
    seed
        Seed for random number generation, optional
    missing_pct
        The percentage of missing calls, must be within [0.0, 1.0], optional
    phased
        Whether genotypes are phased, default is unphased, optional

    Returns
    -------
    A dataset containing the following variables:

    - :data:`ibdkit.variables.variant_contig_spec` (variants)
    - :data:`ibdkit.variables.variant_position_spec` (variants)
    - :data:`ibdkit.variables.variant_allele_spec` (variants)
    - :data:`ibdkit.variables.sample_id_spec` (samples)
    - :data:`ibdkit.variables.call_genotype_spec` (variants, samples, ploidy)
    - :data:`ibdkit.variables.call_genotype_mask_spec` (variants, samples, ploidy)
    - :data:`ibdkit.variables.call_genotype_phased_spec` (variants, samples), if ``phased`` is not None
    """
    if missing_pct and (missing_pct < 0.0 or missing_pct > 1.0):
        raise ValueError("missing_pct must be within [0.0, 1.0]")
    rs = np.random.RandomState(seed=seed)
    call_genotype = rs.randint(0, 2, size=(n_variant, n_sample, 2), dtype=np.int8)
    if missing_pct:
        # a missing call has both alleles missing
        missing = rs.rand(n_variant, n_sample) < missing_pct
        call_genotype[missing] = -1
    if phased is None:
        call_genotype_phased = None
    else:
        call_genotype_phased = np.full((n_variant, n_sample), phased, dtype=bool)

    contig_size = split_array_chunks(n_variant, n_contig)
    contig = np.repeat(np.arange(n_contig), contig_size)
    contig_names = [str(c) for c in range(n_contig)]
    position = np.concatenate([np.arange(size) for size in contig_size])
    alleles: ArrayLike = rs.choice(["A", "C", "G", "T"], size=(n_variant, 2)).astype(
        "S"
    )
    sample_id = np.array([f"S{i}" for i in range(n_sample)])
    return create_genotype_call_dataset(
        variant_contig_names=contig_names,
        variant_contig=contig,
        variant_position=position,
        variant_allele=alleles,
        sample_id=sample_id,
        call_genotype=call_genotype,
        call_genotype_phased=call_genotype_phased,
    )


def genotype_call_dataset_from_matrix(
    genotypes: ArrayLike, variant_maf: Optional[ArrayLike] = None
) -> Dataset:
    """Build a genotype call dataset from a small matrix of genotype codes.

    Parameters
    ----------
    genotypes
        [array_like, shape: (N, M)]
        Genotype codes for N samples (rows) and M variants (columns):
        the number of alternate alleles of each call, or -1 for a missing call.
    variant_maf
        [array_like, shape: (M,), optional]
        Precomputed minor allele frequency of each variant.

    Returns
    -------
    A dataset with samples named "0", "1", ... and variants on a single
    contig at positions 0, 1, ..., containing ``call_genotype`` and
    ``call_alternate_allele_count``.

    Raises
    ------
    ValueError
        If the matrix is not two dimensional or holds an invalid genotype code.
    """
    codes = validate_genotype_codes(genotypes)
    if codes.ndim != 2:
        raise ValueError(f"2-dimensional array expected, got '{codes.ndim}'")
    calls = codes.T.astype(np.int8)
    n_variant, n_sample = calls.shape
    ds = create_genotype_call_dataset(
        variant_contig_names=["0"],
        variant_contig=np.zeros(n_variant, dtype=np.int64),
        variant_position=np.arange(n_variant, dtype=np.int64),
        variant_allele=np.tile(np.array([b"A", b"C"]), (n_variant, 1)),
        sample_id=np.array([str(i) for i in range(n_sample)]),
        call_genotype=genotype_codes_to_alleles(calls),
        variant_maf=variant_maf,
    )
    ds["call_alternate_allele_count"] = (("variants", "samples"), calls)
    return ds
