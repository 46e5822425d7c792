"""
Base class of generated message wrappers.

A wrapper owns exactly one raw struct. Generated subclasses provide four
static hooks built from the same field table:

- ``_init_raw(raw)``: apply declared defaults to a zeroed struct
- ``_fini_raw(raw)``: release owned buffers in field order, zeroing them
- ``_copy_raw(src, dst)``: deep-copy into a struct that owns nothing
- ``_adopt_raw(raw)``: register buffers allocated outside the wrapper

Views returned for nested in-place fields share their parent's struct and
never release anything themselves.
"""

import ctypes


def _plain(value):
    if isinstance(value, Message):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class Message:
    """Safe wrapper over one raw message struct."""

    __slots__ = ("_raw", "_owned", "_parent", "__weakref__")

    _raw_type_: type[ctypes.Structure]
    _type_name_: str = ""
    _field_names_: tuple[str, ...] = ()

    def __init__(self, **fields):
        """
        Create a zero-initialized message with defaults, then assign ``fields``.

        On any failure every buffer acquired so far is released before the
        exception propagates.
        """
        self._raw = self._raw_type_()
        self._owned = True
        self._parent = None
        try:
            self._init_raw(self._raw)
            for name, value in fields.items():
                if name not in self._field_names_:
                    raise TypeError(f"{type(self).__name__}() got an unexpected field {name!r}")
                setattr(self, name, value)
        except BaseException:
            self._fini_raw(self._raw)
            raise

    # ------------------------------------------------------------------
    # Hooks overridden by generated classes
    # ------------------------------------------------------------------

    @staticmethod
    def _init_raw(raw) -> None:
        pass

    @staticmethod
    def _fini_raw(raw) -> None:
        pass

    @staticmethod
    def _copy_raw(src, dst) -> None:
        pass

    @staticmethod
    def _adopt_raw(raw) -> None:
        pass

    # ------------------------------------------------------------------
    # Construction helpers used by generated code and descriptors
    # ------------------------------------------------------------------

    @classmethod
    def _new(cls, raw, owned: bool, parent=None):
        obj = cls.__new__(cls)
        obj._raw = raw
        obj._owned = owned
        obj._parent = parent
        return obj

    @classmethod
    def _view(cls, raw, parent):
        return cls._new(raw, False, parent)

    @classmethod
    def _copy_checked(cls, src, dst) -> None:
        try:
            cls._copy_raw(src, dst)
        except BaseException:
            cls._fini_raw(dst)
            raise

    @classmethod
    def _from_raw_copy(cls, raw):
        obj = cls._new(cls._raw_type_(), True)
        cls._copy_checked(raw, obj._raw)
        return obj

    @classmethod
    def _assign_raw(cls, dst, src) -> None:
        """Replace the contents of ``dst`` with a deep copy of ``src``."""
        tmp = cls._raw_type_()
        cls._copy_checked(src, tmp)
        cls._fini_raw(dst)
        ctypes.memmove(ctypes.addressof(dst), ctypes.addressof(tmp), ctypes.sizeof(tmp))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_view(self) -> bool:
        """True for a nested value borrowed from its parent message."""
        return not self._owned

    def destroy(self) -> None:
        """Release every owned buffer. Safe to call more than once."""
        if self._owned:
            self._fini_raw(self._raw)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()

    def __del__(self):
        if getattr(self, "_owned", False) and getattr(self, "_raw", None) is not None:
            self._fini_raw(self._raw)

    def clone(self):
        """Deep copy with freshly allocated buffers."""
        cls = type(self)
        return cls._from_raw_copy(self._raw)

    def __copy__(self):
        return self.clone()

    def __deepcopy__(self, memo):
        return self.clone()

    # ------------------------------------------------------------------
    # Raw conversion
    # ------------------------------------------------------------------

    def to_raw(self):
        """
        Return a deep copy of the raw struct.

        The caller owns its buffers and releases them with ``fini_raw``.
        """
        raw = self._raw_type_()
        self._copy_checked(self._raw, raw)
        return raw

    @classmethod
    def from_raw(cls, raw):
        """
        Move a raw struct into a new wrapper, taking ownership of its buffers.

        The source struct is zeroed so it no longer refers to them.
        """
        if not isinstance(raw, cls._raw_type_):
            raise TypeError(
                f"{cls.__name__}.from_raw expects {cls._raw_type_.__name__}, "
                f"got {type(raw).__name__}"
            )
        obj = cls._new(cls._raw_type_(), True)
        size = ctypes.sizeof(raw)
        ctypes.memmove(ctypes.addressof(obj._raw), ctypes.addressof(raw), size)
        ctypes.memset(ctypes.addressof(raw), 0, size)
        cls._adopt_raw(obj._raw)
        return obj

    @classmethod
    def fini_raw(cls, raw) -> None:
        """Release the buffers of a raw struct obtained from ``to_raw``."""
        cls._fini_raw(raw)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {name: _plain(getattr(self, name)) for name in self._field_names_}

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={getattr(self, name)!r}" for name in self._field_names_)
        return f"{type(self).__name__}({fields})"
