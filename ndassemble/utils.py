import inspect
from collections.abc import Iterator

import numpy as np
from toolz import first, partition

from .errors import DimensionMismatch


class Dispatch:
    """Simple single dispatch."""

    def __init__(self, name=None):
        self._lookup = {}
        self._lazy = {}
        if name:
            self.__name__ = name

    def register(self, type, func=None):
        """Register dispatch of `func` on arguments of type `type`"""

        def wrapper(func):
            if isinstance(type, tuple):
                for t in type:
                    self.register(t, func)
            else:
                self._lookup[type] = func
            return func

        return wrapper(func) if func is not None else wrapper

    def register_lazy(self, toplevel, func=None):
        """
        Register a registration function which will be called if the
        *toplevel* module (e.g. 'sparse') is ever loaded.
        """

        def wrapper(func):
            self._lazy[toplevel] = func
            return func

        return wrapper(func) if func is not None else wrapper

    def dispatch(self, cls):
        """Return the function implementation for the given ``cls``"""
        lk = self._lookup
        try:
            impl = lk[cls]
        except KeyError:
            pass
        else:
            return impl
        # Is a lazy registration function present?
        toplevel, _, _ = cls.__module__.partition(".")
        try:
            register = self._lazy.pop(toplevel)
        except KeyError:
            pass
        else:
            register()
            return self.dispatch(cls)  # recurse
        # Walk the MRO and cache the lookup result
        for cls2 in inspect.getmro(cls)[1:]:
            if cls2 in lk:
                lk[cls] = lk[cls2]
                return lk[cls2]
        raise TypeError("No dispatch for {0}".format(cls))

    def __call__(self, arg, *args, **kwargs):
        """
        Call the corresponding method based on type of argument.
        """
        meth = self.dispatch(type(arg))
        return meth(arg, *args, **kwargs)

    @property
    def __doc__(self):
        try:
            func = self.dispatch(object)
            return func.__doc__
        except TypeError:
            return "Single Dispatch for %s" % getattr(self, "__name__", "")


def deepmap(func, *seqs):
    """Apply function inside nested lists

    >>> inc = lambda x: x + 1
    >>> deepmap(inc, [[1, 2], [3, 4]])
    [[2, 3], [4, 5]]

    >>> add = lambda x, y: x + y
    >>> deepmap(add, [[1, 2], [3, 4]], [[10, 20], [30, 40]])
    [[11, 22], [33, 44]]
    """
    if isinstance(seqs[0], (list, Iterator)):
        return [deepmap(func, *items) for items in zip(*seqs)]
    else:
        return func(*seqs)


def gridmap(func, *seqs):
    """Apply function elementwise over block grids, keeping their layout

    Nested lists stay nested lists, ndarrays give an object ndarray of the
    same shape and any other iterable gives a flat list.  ndarray sources
    all have to be ndarrays of one shape.

    >>> gridmap(lambda x: x * 10, [[1, 2], [3, 4]])
    [[10, 20], [30, 40]]

    >>> gridmap(lambda x, y: x + y, range(3), range(3))
    [0, 2, 4]

    >>> gridmap(str, np.arange(4).reshape(2, 2))
    array([['0', '1'],
           ['2', '3']], dtype=object)
    """
    if not seqs:
        raise TypeError("gridmap() requires at least one sequence to map over")
    if isinstance(seqs[0], list):
        return deepmap(func, *seqs)
    if isinstance(seqs[0], np.ndarray):
        shape = common_shape(seqs)
        if shape is None:
            raise DimensionMismatch(
                "Mapped grids must share a shape, got shapes %s"
                % ", ".join(str(np.shape(s)) for s in seqs)
            )
        out = np.empty(shape, dtype=object)
        for idx in np.ndindex(*shape):
            out[idx] = func(*[s[idx] for s in seqs])
        return out
    return list(map(func, *seqs))


def common_shape(seqs):
    """The shape shared by all ``seqs`` if they are all ndarrays, else None

    >>> common_shape([np.ones((2, 3)), np.zeros((2, 3))])
    (2, 3)
    >>> common_shape([np.ones(2), [1, 2]]) is None
    True
    """
    if not all(isinstance(s, np.ndarray) for s in seqs):
        return None
    shapes = {s.shape for s in seqs}
    if len(shapes) != 1:
        return None
    return first(shapes)


def flatmap(func, *seqs):
    """Lazily apply ``func`` over zipped ``seqs``

    Returns the lazy iterator of results and the outer shape shared by the
    sources, or ``None`` when the sources carry no static shape.  Arrays are
    walked in C order.

    >>> it, shape = flatmap(lambda x: [x, -x], range(3))
    >>> list(it), shape
    ([[0, 0], [1, -1], [2, -2]], None)

    >>> it, shape = flatmap(lambda x: x + 1, np.arange(6).reshape(2, 3))
    >>> shape
    (2, 3)
    """
    if not seqs:
        raise TypeError("flatmap() requires at least one sequence to map over")
    shape = common_shape(seqs)
    if shape is not None:
        seqs = [s.flat for s in seqs]
    return map(func, *seqs), shape


def reshapelist(shape, seq):
    """Reshape a flat sequence to nested lists of the given shape

    >>> reshapelist((2, 3), range(6))
    [[0, 1, 2], [3, 4, 5]]
    """
    if len(shape) == 1:
        return list(seq)
    else:
        n = len(seq) // shape[0]
        return [reshapelist(shape[1:], part) for part in partition(n, seq)]


def normalize_axis(axis, ndim, argname="axis"):
    """Translate a possibly negative axis into ``range(ndim)``

    >>> normalize_axis(-1, 3)
    2
    >>> normalize_axis(3, 3)
    Traceback (most recent call last):
        ...
    ValueError: axis 3 is out of bounds for array of dimension 3
    """
    if not -ndim <= axis < ndim:
        raise ValueError(
            "%s %d is out of bounds for array of dimension %d" % (argname, axis, ndim)
        )
    if axis < 0:
        axis += ndim
    return axis


def _not_empty(x):
    return x.shape and 0 not in x.shape


def assert_eq_shape(a, b):
    assert tuple(a) == tuple(b), "shapes differ: %s != %s" % (a, b)


def assert_eq(a, b, check_shape=True, check_dtype=True, **kwargs):
    """Assert that two arrays hold the same values

    Shapes have to match when ``check_shape`` is set, dtypes when both
    arrays are non-empty and ``check_dtype`` is set.  Extra keyword arguments go to
    ``np.allclose``.
    """
    a = np.asanyarray(a)
    b = np.asanyarray(b)

    if check_shape:
        assert_eq_shape(a.shape, b.shape)
    if check_dtype and _not_empty(a) and _not_empty(b):
        assert (
            a.dtype == b.dtype
        ), "a and b have different dtypes (a: %s, b: %s)" % (a.dtype, b.dtype)

    if a.dtype.kind in "fc" or b.dtype.kind in "fc":
        assert np.allclose(a, b, **kwargs), "arrays differ:\n%s\n%s" % (a, b)
    else:
        assert (a == b).all(), "arrays differ:\n%s\n%s" % (a, b)
    return True
