import threading


class FusionPool:
    """Append-only collection of every scored fusion variant.

    Safe for any number of concurrent writers. There is no size cap, every
    ability variant of every pair is kept.
    """

    def __init__(self):
        self._fusions = []
        self._lock = threading.Lock()

    def add(self, fusion):
        with self._lock:
            self._fusions.append(fusion)

    def extend(self, fusions):
        with self._lock:
            self._fusions.extend(fusions)

    def sort(self):
        """Best score first. Equal scores keep their insertion order."""
        with self._lock:
            self._fusions.sort(key=lambda f: f.score, reverse=True)

    def to_list(self) -> list:
        with self._lock:
            return list(self._fusions)

    def size(self) -> int:
        with self._lock:
            return len(self._fusions)

    def clear(self):
        with self._lock:
            self._fusions.clear()

    def __len__(self):
        return self.size()
