class ValueMixin:
    """
    Equality, hashing and a readable representation for value objects.

    Subclasses list the attributes that identify a value in `_fields`. Once `_freeze()`
    has been called, assigning to any attribute raises AttributeError.
    """
    _fields = ()
    _frozen = False

    def _values(self):
        return tuple(getattr(self, name) for name in self._fields)

    def _freeze(self):
        object.__setattr__(self, '_frozen', True)

    def __setattr__(self, key, value):
        if self._frozen:
            raise AttributeError("%s is immutable, cannot set '%s'" % (type(self).__name__, key))
        super().__setattr__(key, value)

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self._values() == other._values()

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((self.__class__, self._values()))

    def __repr__(self):
        """
        >>> class Point(ValueMixin):
        ...     _fields = ('x', 'y')
        ...     def __init__(self, x, y):
        ...         self.x, self.y = x, y
        >>> Point(1, 'a')
        Point(x=1, y='a')
        """
        return "%s(%s)" % (type(self).__name__,
                           ", ".join("%s=%r" % (name, value) for name, value in zip(self._fields, self._values())))
