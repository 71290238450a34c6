from ..exceptions import StoreKeyError


def meta_namespace_key_func(obj):
    """Create a `namespace/name` key, or just `name` for cluster scoped objects."""
    try:
        name = obj.metadata.name
        namespace = getattr(obj.metadata, 'namespace', None)
    except AttributeError as e:
        raise StoreKeyError(obj) from e
    if not name:
        raise StoreKeyError(obj)
    if namespace:
        return f'{namespace}/{name}'
    return name


class Store:
    def __init__(self, key_func=None):
        if key_func is None:
            key_func = meta_namespace_key_func
        self.key_func = key_func
        self._items = {}

    def __repr__(self):
        keys = list(self.keys())
        return f'<Store {keys}>'

    def __setitem__(self, key, obj):
        self._items[key] = obj

    def __getitem__(self, key):
        return self._items[key]

    def __delitem__(self, key):
        del self._items[key]

    def __contains__(self, key):
        return key in self._items

    def __len__(self):
        return len(self._items)

    def add(self, obj):
        """Add the given item to the store."""
        key = self.key_func(obj)
        self[key] = obj

    def update(self, obj):
        """Update the given item in the store."""
        key = self.key_func(obj)
        self[key] = obj

    def delete(self, obj):
        """Delete the given item from the store."""
        key = self.key_func(obj)
        self._items.pop(key, None)

    def keys(self):
        """Return the keys of all items in the store."""
        return self._items.keys()

    def list(self):
        """Return all items in the store."""
        return list(self._items.values())

    def get(self, obj):
        """Get the stored version of the given object, raises KeyError."""
        key = self.key_func(obj)
        return self[key]

    def get_by_key(self, key):
        return self._items[key]

    def replace(self, objs):
        """Replace all items in the store with the given ones."""
        self._items.clear()
        for obj in objs:
            self.add(obj)

    def clear(self):
        """Remove all items from the store."""
        self._items.clear()
