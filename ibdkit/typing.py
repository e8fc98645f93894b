from typing import Union

import dask.array as da
import numpy as np

ArrayLike = Union[np.ndarray, da.Array]
