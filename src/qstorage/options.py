from dataclasses import dataclass, fields
from typing import Any

__all__ = [
    'StorageOptions',
    'load_options',
]


@dataclass
class StorageOptions:
    """Options

    - fetch_size: Rows fetched per round trip while draining a result (default: 500)
    - prepare: Use server-side prepared statements where the driver supports it (default: True)
    - flush_on_close: Execute partially filled batches when the storage closes (default: False)
    """
    fetch_size: int = 500
    prepare: bool = True
    flush_on_close: bool = False

    def __post_init__(self):
        if not isinstance(self.fetch_size, int) or self.fetch_size < 1:
            raise ValueError(f'fetch_size must be a positive integer, got {self.fetch_size!r}')


def load_options(options: StorageOptions | dict[str, Any] | None = None,
                 **kw: Any) -> StorageOptions:
    """Build StorageOptions from an instance, a dict, or keyword arguments.

    Keyword arguments override values from `options`. Unknown keys raise
    ValueError.

    >>> load_options(fetch_size=10).fetch_size
    10
    >>> load_options({'prepare': False}, flush_on_close=True)
    StorageOptions(fetch_size=500, prepare=False, flush_on_close=True)
    """
    if isinstance(options, StorageOptions):
        values = {f.name: getattr(options, f.name) for f in fields(options)}
    else:
        values = dict(options or {})
    values.update(kw)

    known = {f.name for f in fields(StorageOptions)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f'Unknown storage options: {unknown}')

    return StorageOptions(**values)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
