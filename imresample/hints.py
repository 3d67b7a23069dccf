from typing import Union, Iterable, Mapping
import numpy as np

Array = Union[np.ndarray, Iterable, int, float]
Matrix = Array
Vector = Matrix
Point = Vector
Index = Vector
Shape = Iterable[int]
DType = Union[str, type, np.dtype]
GridLike = Union['OutputGrid', Mapping]
Fill = Union[str, int, 'FillPolicy']
