#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Validation of dense arrays handed to the fitting code. NumPy arrays are taken as they are or rejected: only float32/float64, C-contiguous, with the expected rank and shape. Plain Python sequences have no memory layout to misread and are converted to float64.
"""

from enum import Enum
import numpy as np
from ..errors import InvalidInput, UnsupportedDataFormat

class ElementType(Enum):
    """Element types accepted at the array boundary."""
    FLOAT32 = np.dtype(np.float32)
    FLOAT64 = np.dtype(np.float64)

    @classmethod
    def of(cls, array):
        for elementType in cls:
            if array.dtype == elementType.value:
                return elementType
        raise UnsupportedDataFormat('Element type %s is not supported, hand a float32 or float64 array.' % array.dtype)

def checkArray(a, ndim, shape = None, name = 'array'):
    """
    Return ``a`` as a float64 array after checking it. ``shape`` is a tuple with the same length as ``ndim`` where None leaves that dimension free. NumPy arrays of the wrong element type, rank, shape or memory layout raise UnsupportedDataFormat; non-finite values raise InvalidInput.
    """
    if isinstance(a, np.ndarray):
        ElementType.of(a)
        if a.ndim != ndim:
            raise UnsupportedDataFormat('%s has ndim %d, expected %d.' % (name, a.ndim, ndim))
        if not a.flags['C_CONTIGUOUS']:
            raise UnsupportedDataFormat('%s is not C-contiguous, only contiguous row-major buffers are supported.' % name)
        out = a.astype(np.float64)
    else:
        try:
            out = np.array(a, dtype = np.float64)
        except (TypeError, ValueError) as e:
            raise UnsupportedDataFormat('%s cannot be read as a float array: %s' % (name, e)) from e

        # An empty sequence has no rank of its own
        if out.size == 0 and shape is not None and ndim > 1:
            out = out.reshape([0 if s is None else s for s in shape])
        if out.ndim != ndim:
            raise UnsupportedDataFormat('%s has ndim %d, expected %d.' % (name, out.ndim, ndim))

    if shape is not None:
        for axis, (got, expected) in enumerate(zip(out.shape, shape)):
            if expected is not None and got != expected:
                raise UnsupportedDataFormat('%s has shape %s, expected %d entries along axis %d.' % (name, out.shape, expected, axis))

    if not np.all(np.isfinite(out)):
        raise InvalidInput('%s contains NaN or infinite values.' % name)

    return out

def checkPoints(a, dims, name = 'points'):
    """
    Point sets are (numPoints, dims). Homogeneous 3D points (numPoints, 4) are accepted where ``dims`` is 3 and the w column is dropped.
    """
    if dims == 3 and np.ndim(a) == 2 and np.shape(a)[1] == 4:
        return checkArray(a, 2, (None, 4), name)[:, :3]
    return checkArray(a, 2, (None, dims), name)

def readOnly(a, dtype = np.float64):
    """
    Copy ``a`` into a new array that cannot be written to, for data shared between fits.
    """
    out = np.array(a, dtype = dtype)
    out.flags.writeable = False
    return out
