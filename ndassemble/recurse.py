"""Depth-first traversal of nested block lists."""


class Recurser:
    """Walk and fold a nested structure

    ``recurse_if(x)`` decides whether ``x`` is a level of nesting to descend
    into or an item.  Adapted from ``numpy.core.shape_base._Recurser``.
    """

    def __init__(self, recurse_if):
        self.recurse_if = recurse_if

    def walk(self, x, index=()):
        """Yield ``(index, value, entering)`` for every node, parents first

        >>> rec = Recurser(lambda x: type(x) is list)
        >>> [i for i, _, entering in rec.walk([[1], [2, 3]]) if not entering]
        [(0, 0), (1, 0), (1, 1)]
        """
        entering = self.recurse_if(x)
        yield index, x, entering
        if entering:
            for i, xi in enumerate(x):
                yield from self.walk(xi, index + (i,))

    def map(self, x, func):
        """Apply ``func`` to every item, rebuilding the nesting as lists

        >>> Recurser(lambda x: type(x) is list).map([[1], [2, 3]], str)
        [['1'], ['2', '3']]
        """
        if not self.recurse_if(x):
            return func(x)
        return [self.map(xi, func) for xi in x]

    def reduce(self, x, func, depth=0):
        """Fold every level innermost first

        ``func(items, depth)`` receives the already reduced children of a
        level and the depth of that level, 0 being the outermost.

        >>> rec = Recurser(lambda x: type(x) is list)
        >>> rec.reduce([[1, 2], [3]], lambda xs, depth: sum(xs) * 10 ** depth)
        60
        """
        if not self.recurse_if(x):
            return x
        return func([self.reduce(xi, func, depth + 1) for xi in x], depth)

    def items(self, x):
        """All items, depth first

        >>> list(Recurser(lambda x: type(x) is list).items([[1, 2], [3]]))
        [1, 2, 3]
        """
        for _, value, entering in self.walk(x):
            if not entering:
                yield value
