# Numba guvectorize functions (and their dependencies) are defined
# in a separate file here, and imported dynamically to avoid
# initial compilation overhead.

import numpy as np

from ibdkit.accelerate import numba_guvectorize
from ibdkit.blocks import MISSING_CODE
from ibdkit.typing import ArrayLike

# IBS state of a pair of calls, indexed by ``a << 2 | b`` where ``a`` and ``b``
# are alternate allele counts (3 for missing). Entries involving a missing
# call are never read.
IBS_LOOKUP = np.array(
    [
        2,  # 00 00  0  0
        1,  # 00 01  0  1
        0,  # 00 10  0  2
        0,  # 00 11  0  NA
        1,  # 01 00  1  0
        2,  # 01 01  1  1
        1,  # 01 10  1  2
        0,  # 01 11  1  NA
        0,  # 10 00  2  0
        1,  # 10 01  2  1
        2,  # 10 10  2  2
        0,  # 10 11  2  NA
        0,  # 11 00  NA 0
        0,  # 11 01  NA 1
        0,  # 11 10  NA 2
        0,  # 11 11  NA NA
    ],
    dtype=np.uint8,
)
IBS_LOOKUP.flags.writeable = False


@numba_guvectorize(  # type: ignore
    [
        "void(uint8[:,:], uint8[:,:], int64[:], int64[:,:,:])",
    ],
    "(v,n),(v,m),(k)->(n,m,k)",
)
def ibs_block_counts(
    block0: ArrayLike, block1: ArrayLike, _: ArrayLike, out: ArrayLike
) -> None:  # pragma: no cover
    """Generalized U-function counting the IBS state of every pair of samples
    between two blocks of encoded calls covering the same variants.

    Parameters
    ----------
    block0
        Encoded calls of shape (variants, samples0) with values 0, 1, 2
        or 3 for a missing call.
    block1
        Encoded calls of shape (variants, samples1).
    _
        Dummy variable of shape (3,) defining the number of IBS states.

    Returns
    -------
    counts : ndarray
        Counts of shape (samples0, samples1, 3) holding the number of
        variants at which each pair shares 0, 1 or 2 alleles identical
        by state. Variants with a missing call in either sample of a pair
        are not counted for that pair.
    """
    out[:] = 0
    n_variant, n_sample0 = block0.shape
    n_sample1 = block1.shape[1]
    for v in range(n_variant):
        for s0 in range(n_sample0):
            left = block0[v, s0]
            if left == MISSING_CODE:
                continue
            for s1 in range(n_sample1):
                right = block1[v, s1]
                if right != MISSING_CODE:
                    out[s0, s1, IBS_LOOKUP[(left << 2) | right]] += 1
