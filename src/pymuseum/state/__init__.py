"""State/store layer.

Session-scoped local state: the favourites/ratings mirror and the queue of
mutations that could not be confirmed remotely.  Both are constructed
explicitly and handed to the components that need them.
"""
