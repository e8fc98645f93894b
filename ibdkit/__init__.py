from importlib.metadata import PackageNotFoundError, version

from .blocks import chunk_genotype_matrix
from .genotype import (
    Genotype,
    count_call_alternate_alleles,
    count_reference_alleles,
    genotype_codes_to_alleles,
    validate_genotype_codes,
)
from .model import (
    DIM_ALLELE,
    DIM_PLOIDY,
    DIM_SAMPLE,
    DIM_VARIANT,
    create_genotype_call_dataset,
)
from .stats.ibd import (
    ExtendedIBDInfo,
    IBDInfo,
    IBSExpectations,
    calculate_ibd_info,
    estimate_ibd,
    ibs_expectation_coefficients,
    ibs_expectations,
    ibs_expectations_for_genotypes,
    identity_by_descent,
    identity_by_descent_matrix,
    pairwise_ibs_counts,
)
from .testing import genotype_call_dataset_from_matrix, simulate_genotype_call_dataset

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = [
    "DIM_ALLELE",
    "DIM_PLOIDY",
    "DIM_SAMPLE",
    "DIM_VARIANT",
    "ExtendedIBDInfo",
    "Genotype",
    "IBDInfo",
    "IBSExpectations",
    "calculate_ibd_info",
    "chunk_genotype_matrix",
    "count_call_alternate_alleles",
    "count_reference_alleles",
    "create_genotype_call_dataset",
    "estimate_ibd",
    "genotype_call_dataset_from_matrix",
    "genotype_codes_to_alleles",
    "ibs_expectation_coefficients",
    "ibs_expectations",
    "ibs_expectations_for_genotypes",
    "identity_by_descent",
    "identity_by_descent_matrix",
    "pairwise_ibs_counts",
    "simulate_genotype_call_dataset",
    "validate_genotype_codes",
]
