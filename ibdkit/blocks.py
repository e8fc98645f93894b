"""Reshape a variant-major call matrix into square blocks of encoded calls.

Each block covers ``chunk_size`` consecutive variants (rows) and
``chunk_size`` consecutive samples (columns) and holds one byte per call:
the alternate allele count, or :data:`MISSING_CODE` for a missing call or a
cell past the end of the matrix.
"""
import logging
from functools import reduce
from typing import List

import dask
import dask.array as da
import numpy as np

from .genotype import validate_genotype_codes
from .typing import ArrayLike
from .utils import n_blocks, sizes_to_start_offsets

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024
MISSING_CODE = 3


def encode_calls(calls: ArrayLike) -> np.ndarray:
    """Encode alternate allele counts as bytes with missing calls set to 3.

    Raises
    ------
    ValueError
        If any call is not one of -1, 0, 1 or 2.
    """
    calls = validate_genotype_codes(calls)
    return np.where(calls < 0, MISSING_CODE, calls).astype(np.uint8)


def partial_block(
    calls: np.ndarray,
    variant_offset: int,
    variant_block: int,
    chunk_size: int,
) -> np.ndarray:
    """The contribution of a run of encoded variant rows to one block.

    Parameters
    ----------
    calls
        Encoded calls of shape (variants, samples) for consecutive variants,
        the first of which has the dense index ``variant_offset``, and the
        samples of a single sample block (at most ``chunk_size``).
    variant_offset
        Dense index of the first row of ``calls``.
    variant_block
        Index of the block along the variants dimension.
    chunk_size
        Block size in both dimensions.

    Returns
    -------
    A (chunk_size, chunk_size) block where cells not covered by ``calls``
    are missing.
    """
    block = np.full((chunk_size, chunk_size), MISSING_CODE, dtype=np.uint8)
    block_start = variant_block * chunk_size
    start = max(block_start, variant_offset)
    stop = min(block_start + chunk_size, variant_offset + calls.shape[0])
    if start >= stop:
        return block
    rows = calls[start - variant_offset : stop - variant_offset]
    block[start - block_start : stop - block_start, : rows.shape[1]] = rows
    return block


def merge_blocks(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Combine two partial blocks, keeping the first non-missing value of each cell.

    Partial blocks built from disjoint variant rows never hold two
    non-missing values for the same cell, so the merge is commutative.
    """
    return np.where(a == MISSING_CODE, b, a)


def _assemble_block(partials: List[np.ndarray]) -> np.ndarray:
    return reduce(merge_blocks, partials)


def chunk_genotype_matrix(
    calls: ArrayLike, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> da.Array:
    """Rearrange a (variants, samples) matrix of alternate allele counts into
    square blocks of encoded calls.

    Every variant is identified by its dense index over the whole matrix:
    it lands in row ``index % chunk_size`` of variant block
    ``index // chunk_size``. The input is rechunked to ``chunk_size`` samples
    and may be partitioned arbitrarily along the variants dimension; each
    block is merged from the partial blocks of every input partition
    overlapping it, so the whole matrix is never assembled in one task.

    Parameters
    ----------
    calls
        [array-like, shape: (M, N)]
        Alternate allele counts (-1 for missing) for M variants and N samples.
    chunk_size
        Number of variants and samples in each block.

    Returns
    -------
    [dask array, shape: (ceil(M / chunk_size) * chunk_size, ceil(N / chunk_size) * chunk_size)]
    A uint8 array with (chunk_size, chunk_size) chunks. Cells beyond the
    input are set to the missing code 3.

    Raises
    ------
    ValueError
        If ``calls`` is not two dimensional or empty, or ``chunk_size`` is
        not positive.
        Invalid genotype codes raise a ValueError when the blocks are computed.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    calls = da.asarray(calls)
    if calls.ndim != 2:
        raise ValueError(f"2-dimensional array expected, got '{calls.ndim}'")
    if calls.size == 0:
        raise ValueError(f"Cannot chunk an empty call matrix of shape {calls.shape}")
    # a partition holds the samples of exactly one sample block
    calls = calls.rechunk({1: chunk_size})
    n_variant, n_sample = calls.shape
    n_variant_blocks = n_blocks(n_variant, chunk_size)
    n_sample_blocks = n_blocks(n_sample, chunk_size)
    offsets = sizes_to_start_offsets(calls.chunks[0])
    partitions = [
        [dask.delayed(encode_calls, pure=True)(p) for p in row]
        for row in calls.to_delayed()
    ]
    logger.info(
        f"Chunking {n_variant} variants x {n_sample} samples from "
        f"{len(partitions)} variant partitions into {n_variant_blocks} x "
        f"{n_sample_blocks} blocks of size {chunk_size}"
    )

    grid = []
    for v in range(n_variant_blocks):
        lo, hi = v * chunk_size, (v + 1) * chunk_size
        overlapping = [
            k
            for k in range(len(partitions))
            if offsets[k] < hi and offsets[k + 1] > lo
        ]
        row = []
        for s in range(n_sample_blocks):
            partials = [
                dask.delayed(partial_block, pure=True)(
                    partitions[k][s], int(offsets[k]), v, chunk_size
                )
                for k in overlapping
            ]
            block = dask.delayed(_assemble_block, pure=True)(partials)
            row.append(
                da.from_delayed(block, shape=(chunk_size, chunk_size), dtype=np.uint8)
            )
        grid.append(row)
    return da.block(grid)
