import warnings
from typing import Any, Callable, Hashable, Mapping, Optional, Set, Tuple, Union

import numpy as np
from xarray import Dataset

from . import variables
from .typing import ArrayLike


class DimensionWarning(UserWarning):
    "Warning about dimension mismatches."
    pass


class MergeWarning(UserWarning):
    """Warnings about merging datasets."""

    pass


def check_array_like(
    a: Any,
    kind: Union[None, str, Set[str]] = None,
    ndim: Optional[int] = None,
    dims: Optional[Tuple[str, ...]] = None,
) -> None:
    """Check the dtype kind and dimensions of a dataset variable.

    Parameters
    ----------
    a
        Array with ``dtype``, ``ndim`` and ``dims`` attributes.
    kind
        Dtype kind the array must have, or a set of accepted kinds.
    ndim
        Number of dimensions the array must have.
    dims
        Expected dimension names.

    Raises
    ------
    TypeError
        If ``a`` is not an array or its dtype kind does not match ``kind``.
    ValueError
        If the number of dimensions of ``a`` does not match ``ndim``.

    Warns
    -----
    DimensionWarning
        If the dimension names of ``a`` differ from ``dims``.
    """
    for k in ("ndim", "dtype", "dims"):
        if not hasattr(a, k):
            raise TypeError(f"Not an array. Missing attribute '{k}'")
    kinds = {kind} if isinstance(kind, str) else kind
    if kinds is not None and a.dtype.kind not in kinds:
        raise TypeError(f"Array dtype kind ({a.dtype.kind}) does not match {kind}")
    if ndim is not None and a.ndim != ndim:
        raise ValueError(f"Number of dimensions ({a.ndim}) does not match {ndim}")
    if dims is not None and tuple(a.dims) != tuple(dims):
        warnings.warn(f"Dimensions {a.dims} do not match {dims}", DimensionWarning)


def merge_datasets(input: Dataset, output: Dataset) -> Dataset:
    """Merge the input and output datasets into a new dataset, giving precedence to variables
    and attributes in the output.

    A `MergeWarning` is issued for every variable or global attribute
    present in both datasets.
    """
    clobber_vars = sorted(
        {str(v) for v in input.data_vars} & {str(v) for v in output.data_vars}
    )
    if len(clobber_vars) > 0:
        warnings.warn(
            f"The following variables in the input dataset will be replaced in the output: {', '.join(clobber_vars)}",
            MergeWarning,
        )
    ds = output.merge(input, compat="override")
    clobber_attrs = sorted({str(k) for k in input.attrs} & {str(k) for k in output.attrs})
    if len(clobber_attrs) > 0:
        warnings.warn(
            f"The following global attributes in the input dataset will be replaced in the output: {', '.join(clobber_attrs)}",
            MergeWarning,
        )
    return ds.assign_attrs({**input.attrs, **output.attrs})


def conditional_merge_datasets(input: Dataset, output: Dataset, merge: bool) -> Dataset:
    """Merge the input and output datasets only if `merge` is true, otherwise just return the output."""
    return merge_datasets(input, output) if merge else output


def define_variable_if_absent(
    ds: Dataset,
    default_variable_name: Hashable,
    variable_name: Optional[Hashable],
    func: Callable[[Dataset], Dataset],
    **kwargs: Any,
) -> Dataset:
    """Define a variable in a dataset using the given function if it's missing.

    Parameters
    ----------
    ds
        The dataset to look for the variable, and used by the function to calculate the variable.
    default_variable_name
        The default name of the variable.
    variable_name
        The actual name of the variable, or None to use the default.
    func
        The function to calculate the variable.
    kwargs
        Additional key word arguments to pass to func.

    Raises
    ------
    ValueError
        If a variable with a non-default name is missing from the dataset.
    """
    variable_name = variable_name or default_variable_name
    if variable_name in ds:
        return ds
    if variable_name != default_variable_name:
        raise ValueError(
            f"Variable '{variable_name}' with non-default name is missing and will not be automatically defined."
        )
    return func(ds, **kwargs)


def create_dataset(
    data_vars: Optional[Mapping[Hashable, Any]] = None,
    coords: Optional[Mapping[Hashable, Any]] = None,
    attrs: Optional[Mapping[Hashable, Any]] = None,
) -> Dataset:
    """Create an Xarray dataset whose registered variables are validated
    and annotated with a `comment` attribute holding their doc comments."""
    ds = Dataset(data_vars, coords, attrs)
    return variables.annotate(ds)


def split_array_chunks(n: int, blocks: int) -> Tuple[int, ...]:
    """Compute chunk sizes for an array of ``n`` elements split into ``blocks``
    nearly equal partitions.

    Examples
    --------
    >>> split_array_chunks(7, 2)
    (4, 3)
    >>> split_array_chunks(7, 3)
    (3, 2, 2)

    Raises
    ------
    ValueError
        * If `blocks` > `n`.
        * If `n` <= 0.
        * If `blocks` <= 0.
    """
    if blocks > n:
        raise ValueError(
            f"Number of blocks ({blocks}) cannot be greater "
            f"than number of elements ({n})"
        )
    if n <= 0:
        raise ValueError(f"Number of elements ({n}) must be >= 0")
    if blocks <= 0:
        raise ValueError(f"Number of blocks ({blocks}) must be >= 0")
    n_div, n_mod = divmod(int(n), int(blocks))
    return n_mod * (n_div + 1,) + (blocks - n_mod) * (n_div,)


def sizes_to_start_offsets(sizes: ArrayLike) -> ArrayLike:
    """Convert an array of sizes, to cumulative offsets, starting with 0"""
    return np.cumsum(np.insert(np.asarray(sizes, dtype=np.int64), 0, 0, axis=0))


def n_blocks(n: int, chunk_size: int) -> int:
    """Number of ``chunk_size`` blocks needed to cover ``n`` elements."""
    return -(-n // chunk_size)
