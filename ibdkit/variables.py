import logging
from dataclasses import dataclass
from typing import Dict, Hashable, Mapping, Optional, Set, Tuple, Union

import xarray as xr

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Spec:
    """Root type Spec"""

    default_name: str
    __doc__: str

    # Specs are registry entries, never dataset keys
    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True, eq=False)
class ArrayLikeSpec(Spec):
    """Expected dtype kind and dimensions of an array variable.

    ``ndim`` defaults to the length of ``dims`` when only ``dims`` is given.

    Raises
    ------
    ValueError
        If conflicting ndim and dims are specified.
    """

    kind: Union[None, str, Set[str]] = None
    ndim: Optional[int] = None
    dims: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.dims:
            if self.ndim and self.ndim != len(self.dims):
                raise ValueError(
                    f"Specified ndim '{self.ndim}' does not match dims {self.dims}"
                )
            object.__setattr__(self, "ndim", len(self.dims))


class IbdkitVariables:
    """Registry of the dataset variables ibdkit reads and writes."""

    registered_variables: Dict[Hashable, Spec] = {}

    @classmethod
    def register_variable(cls, spec: Spec) -> Tuple[str, Spec]:
        """Register variable spec"""
        if spec.default_name in cls.registered_variables:
            raise ValueError(f"`{spec.default_name}` already registered")
        cls.registered_variables[spec.default_name] = spec
        return spec.default_name, spec

    @classmethod
    def _validate(
        cls,
        xr_dataset: xr.Dataset,
        *specs: Union[Spec, Mapping[Hashable, Spec], Hashable],
    ) -> xr.Dataset:
        """
        Validate that xr_dataset contains array(s) of interest, given either
        as specs, as mappings of variable name to spec, or as registered
        variable names. To validate all variables in the dataset, skip `specs`.
        """
        return cls._check_dataset(xr_dataset, False, *specs)

    @classmethod
    def _annotate(
        cls,
        xr_dataset: xr.Dataset,
        *specs: Union[Spec, Mapping[Hashable, Spec], Hashable],
    ) -> xr.Dataset:
        """
        Validate like `_validate`, and annotate variables with a `comment`
        attribute containing their doc comments.
        """
        return cls._check_dataset(xr_dataset, True, *specs)

    @classmethod
    def _check_dataset(
        cls,
        xr_dataset: xr.Dataset,
        add_comment_attr: bool,
        *specs: Union[Spec, Mapping[Hashable, Spec], Hashable],
    ) -> xr.Dataset:
        if len(specs) == 0:
            specs = tuple(xr_dataset.variables.keys())
            logger.debug(f"No specs provided, will validate all variables: {specs}")
        for s in specs:
            if isinstance(s, Spec):
                cls._check_field(
                    xr_dataset, s, s.default_name, add_comment_attr=add_comment_attr
                )
            elif isinstance(s, Mapping):
                for fname, field_spec in s.items():
                    cls._check_field(
                        xr_dataset, field_spec, fname, add_comment_attr=add_comment_attr
                    )
            elif s:
                try:
                    field_spec = cls.registered_variables[s]
                except KeyError:
                    if s in xr_dataset.indexes.keys():
                        logger.debug(f"Ignoring missing spec for index: {s}")
                        continue
                    raise ValueError(f"No array spec registered for {s}")
                cls._check_field(
                    xr_dataset,
                    field_spec,
                    field_spec.default_name,
                    add_comment_attr=add_comment_attr,
                )
        return xr_dataset

    @classmethod
    def _check_field(
        cls,
        xr_dataset: xr.Dataset,
        field_spec: Spec,
        field: Hashable,
        add_comment_attr: bool = False,
    ) -> None:
        from ibdkit.utils import check_array_like

        assert isinstance(
            field_spec, ArrayLikeSpec
        ), "ArrayLikeSpec is the only currently supported variable spec"

        if field not in xr_dataset:
            raise ValueError(f"{field} not present in {xr_dataset}")
        arr = xr_dataset[field]
        try:
            check_array_like(
                arr,
                kind=field_spec.kind,
                ndim=field_spec.ndim,
                dims=field_spec.dims,
            )
        except (TypeError, ValueError) as e:
            raise ValueError(
                f"{field} does not match the spec, see the error above for more detail"
            ) from e
        if add_comment_attr and field_spec.__doc__ is not None:
            arr.attrs["comment"] = field_spec.__doc__.strip()


validate = IbdkitVariables._validate
"""Shortcut for IbdkitVariables.validate"""

annotate = IbdkitVariables._annotate
"""Shortcut for IbdkitVariables.annotate"""

"""
Dataset variables used by ibdkit. The definitions document each variable,
specify its dtype kind and dimensions, and are used to validate inputs and
annotate outputs.
"""

(
    call_alternate_allele_count,
    call_alternate_allele_count_spec,
) = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "call_alternate_allele_count",
        kind="i",
        dims=("variants", "samples"),
        __doc__="""
Number of alternate alleles in each diploid biallelic call: 0 for
homozygous reference, 1 for heterozygous, 2 for homozygous alternate
and -1 for a missing call.
""",
    )
)

call_genotype, call_genotype_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "call_genotype",
        kind="i",
        dims=("variants", "samples", "ploidy"),
        __doc__="""
Call genotype. Encoded as allele values (0 for the reference, 1 for
the alternate allele) or -1 to indicate a missing value.
""",
    )
)

call_genotype_mask, call_genotype_mask_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "call_genotype_mask",
        kind="b",
        dims=("variants", "samples", "ploidy"),
        __doc__="""True where an allele of a call is missing.""",
    )
)

call_genotype_phased, call_genotype_phased_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "call_genotype_phased",
        kind="b",
        dims=("variants", "samples"),
        __doc__="""
True for phased calls. Phasing plays no part in identity by descent.
""",
    )
)

sample_id, sample_id_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "sample_id",
        kind={"S", "U", "O"},
        dims=("samples",),
        __doc__="""Sample name, reported in pairwise results.""",
    )
)

variant_allele, variant_allele_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "variant_allele",
        kind={"S", "O"},
        dims=("variants", "alleles"),
        __doc__="""Reference and alternate allele of each variant.""",
    )
)

variant_contig, variant_contig_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "variant_contig",
        kind={"i", "u"},
        dims=("variants",),
        __doc__="""
Index of the contig each variant lies on.
""",
    )
)

variant_id, variant_id_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "variant_id",
        kind={"S", "U", "O"},
        dims=("variants",),
        __doc__="""Variant name.""",
    )
)

variant_maf, variant_maf_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "variant_maf",
        kind="f",
        dims=("variants",),
        __doc__="""
Precomputed minor (alternate) allele frequency of each variant, used in
place of the frequency observed in the dataset when estimating expected
IBS sharing.
""",
    )
)

variant_position, variant_position_spec = IbdkitVariables.register_variable(
    ArrayLikeSpec(
        "variant_position",
        kind="i",
        dims=("variants",),
        __doc__="""The reference position of the variant.""",
    )
)
