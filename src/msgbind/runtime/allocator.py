"""
Heap allocator for descriptor buffers.

Buffers come from the C library's ``calloc``/``free`` so that memory
handed to or received from C code uses the same allocator on both
sides. Every live buffer is tracked by address; releasing an address
that is not live is an error rather than a silent double free.
"""

import ctypes
import ctypes.util
import logging
import threading

logger = logging.getLogger(__name__)


class DoubleReleaseError(RuntimeError):
    """Raised when a buffer address is released that is not live."""

    pass


def _load_libc() -> ctypes.CDLL:
    name = ctypes.util.find_library("c")
    libc = ctypes.CDLL(name) if name else ctypes.CDLL(None)
    libc.calloc.restype = ctypes.c_void_p
    libc.calloc.argtypes = [ctypes.c_size_t, ctypes.c_size_t]
    libc.free.restype = None
    libc.free.argtypes = [ctypes.c_void_p]
    return libc


class Allocator:
    """
    Tracks every buffer owned by message wrappers.

    Attributes:
        allocation_count: Buffers allocated or adopted so far
        release_count: Buffers released so far
    """

    def __init__(self, libc: ctypes.CDLL | None = None):
        self._libc = libc or _load_libc()
        self._lock = threading.Lock()
        self._live: set[int] = set()
        self.allocation_count = 0
        self.release_count = 0

    @property
    def live_count(self) -> int:
        """Buffers currently owned."""
        with self._lock:
            return len(self._live)

    def allocate(self, nbytes: int) -> int:
        """
        Allocate a zero-filled buffer of ``nbytes`` bytes.

        Returns:
            The buffer address (never 0)

        Raises:
            MemoryError: If the C allocator fails
        """
        if nbytes <= 0:
            raise ValueError(f"allocation size must be positive, got {nbytes}")
        address = self._libc.calloc(1, nbytes)
        if not address:
            raise MemoryError(f"calloc({nbytes}) failed")
        with self._lock:
            self._live.add(address)
            self.allocation_count += 1
        return address

    def release(self, address: int | None) -> None:
        """
        Free a buffer. Releasing NULL is a no-op.

        Raises:
            DoubleReleaseError: If ``address`` is not a live buffer
        """
        if not address:
            return
        with self._lock:
            if address not in self._live:
                raise DoubleReleaseError(f"buffer 0x{address:x} is not live")
            self._live.remove(address)
            self.release_count += 1
        self._libc.free(address)

    def adopt(self, address: int | None) -> None:
        """Take ownership of a buffer allocated elsewhere. Adopting a live buffer is a no-op."""
        if not address:
            return
        with self._lock:
            if address in self._live:
                return
            self._live.add(address)
            self.allocation_count += 1

    def owns(self, address: int | None) -> bool:
        if not address:
            return False
        with self._lock:
            return address in self._live


_default_allocator: Allocator | None = None
_default_lock = threading.Lock()


def get_allocator() -> Allocator:
    """Return the process-wide allocator, creating it on first use."""
    global _default_allocator
    if _default_allocator is None:
        with _default_lock:
            if _default_allocator is None:
                _default_allocator = Allocator()
                logger.debug("Created process allocator")
    return _default_allocator
