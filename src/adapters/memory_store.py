class InMemoryOptionStore:
    """Process-local option store for development and tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def set(self, key: str, blob: str) -> None:
        self._values[key] = blob
        self.write_count += 1
