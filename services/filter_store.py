from collections import OrderedDict
from threading import Lock
from schemas.restaurant import FilterOptions


class FilterStore:
    """Holds one user's restaurant search criteria."""

    def __init__(self):
        self._filters = FilterOptions()

    @property
    def filters(self) -> FilterOptions:
        return self._filters.copy(deep=True)

    def set_filters(self, filters: FilterOptions) -> FilterOptions:
        self._filters = filters.copy(deep=True)
        return self.filters

    def reset_filters(self) -> FilterOptions:
        self._filters = FilterOptions()
        return self.filters


class FilterStoreRegistry:
    """Keeps the filters of the `max_users` most recently active users."""

    def __init__(self, max_users: int = 10000):
        self.max_users = max_users
        self._stores: "OrderedDict[str, FilterStore]" = OrderedDict()
        self._lock = Lock()

    def get(self, user_id: str) -> FilterStore:
        with self._lock:
            if user_id in self._stores:
                self._stores.move_to_end(user_id)
            else:
                self._stores[user_id] = FilterStore()
                while len(self._stores) > self.max_users:
                    self._stores.popitem(last=False)
            return self._stores[user_id]

    def __len__(self) -> int:
        return len(self._stores)
