"""Shared fixtures: a minimal class-file assembler and progress doubles."""

from __future__ import annotations

import struct
from typing import Iterable, Sequence

import pytest

from dep_graph.progress import NullProgressMonitor

CONSTANT_UTF8 = 1
CONSTANT_CLASS = 7
CONSTANT_FIELDREF = 9
CONSTANT_METHODREF = 10
CONSTANT_INTERFACE_METHODREF = 11
CONSTANT_NAME_AND_TYPE = 12


class ClassAssembler:
    """Assemble just enough of a class file for the reader under test."""

    def __init__(self) -> None:
        self._entries: list[bytes] = []
        self._index: dict[tuple, int] = {}

    def _add(self, key: tuple, payload: bytes) -> int:
        if key not in self._index:
            self._entries.append(payload)
            self._index[key] = len(self._entries)
        return self._index[key]

    def utf8(self, value: str) -> int:
        raw = value.encode("utf-8")
        return self._add(("utf8", value), struct.pack(">BH", CONSTANT_UTF8, len(raw)) + raw)

    def cls(self, name: str) -> int:
        name_index = self.utf8(name)
        return self._add(("class", name), struct.pack(">BH", CONSTANT_CLASS, name_index))

    def name_and_type(self, name: str, descriptor: str) -> int:
        payload = struct.pack(">BHH", CONSTANT_NAME_AND_TYPE, self.utf8(name), self.utf8(descriptor))
        return self._add(("nat", name, descriptor), payload)

    def _ref(self, tag: int, owner: str, name: str, descriptor: str) -> int:
        payload = struct.pack(">BHH", tag, self.cls(owner), self.name_and_type(name, descriptor))
        return self._add((tag, owner, name, descriptor), payload)

    def fieldref(self, owner: str, name: str, descriptor: str) -> int:
        return self._ref(CONSTANT_FIELDREF, owner, name, descriptor)

    def methodref(self, owner: str, name: str, descriptor: str) -> int:
        return self._ref(CONSTANT_METHODREF, owner, name, descriptor)

    def interface_methodref(self, owner: str, name: str, descriptor: str) -> int:
        return self._ref(CONSTANT_INTERFACE_METHODREF, owner, name, descriptor)

    def build(
        self,
        name: str,
        *,
        super_name: str | None = "java/lang/Object",
        interfaces: Iterable[str] = (),
        fields: Sequence[tuple[int, str, str]] = (),
        methods: Sequence[tuple[int, str, str, bytes | None]] = (),
        access: int = 0x0021,
    ) -> bytes:
        this_index = self.cls(name)
        super_index = self.cls(super_name) if super_name else 0
        interface_indexes = [self.cls(item) for item in interfaces]
        field_entries = [(acc, self.utf8(fname), self.utf8(desc)) for acc, fname, desc in fields]
        method_entries = [(acc, self.utf8(mname), self.utf8(desc), code) for acc, mname, desc, code in methods]
        code_index = self.utf8("Code") if any(code is not None for *_, code in methods) else 0

        out = bytearray(struct.pack(">IHHH", 0xCAFEBABE, 0, 52, len(self._entries) + 1))
        for entry in self._entries:
            out += entry
        out += struct.pack(">HHHH", access, this_index, super_index, len(interface_indexes))
        for index in interface_indexes:
            out += struct.pack(">H", index)
        out += struct.pack(">H", len(field_entries))
        for acc, name_index, desc_index in field_entries:
            out += struct.pack(">HHHH", acc, name_index, desc_index, 0)
        out += struct.pack(">H", len(method_entries))
        for acc, name_index, desc_index, code in method_entries:
            if code is None:
                out += struct.pack(">HHHH", acc, name_index, desc_index, 0)
                continue
            body = struct.pack(">HHI", 4, 4, len(code)) + code + struct.pack(">HH", 0, 0)
            out += struct.pack(">HHHH", acc, name_index, desc_index, 1)
            out += struct.pack(">HI", code_index, len(body)) + body
        out += struct.pack(">H", 0)
        return bytes(out)


def u2(value: int) -> bytes:
    return struct.pack(">H", value)


def simple_class(name: str, super_name: str = "java/lang/Object", interfaces: Iterable[str] = ()) -> bytes:
    """A class with a constructor calling its superclass constructor."""

    asm = ClassAssembler()
    init = asm.methodref(super_name, "<init>", "()V")
    code = b"\x2a\xb7" + u2(init) + b"\xb1"  # aload_0; invokespecial; return
    return asm.build(name, super_name=super_name, interfaces=interfaces, methods=[(0x0001, "<init>", "()V", code)])


class RecordingListener:
    """Dependency listener that only records events."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def new_dep(self, parent, child, relation) -> None:
        self.events.append((parent, child, relation))


class CancelAfterUnits(NullProgressMonitor):
    """Monitor that reports cancellation once ``limit`` units of work were reported."""

    def __init__(self, limit: int) -> None:
        super().__init__()
        self.limit = limit
        self.total = 0
        self.task_names: list[str] = []

    def set_task_name(self, name: str) -> None:
        self.task_names.append(name)

    def worked(self, amount: int) -> None:
        self.total += amount
        if self.total >= self.limit:
            self.cancelled = True


@pytest.fixture
def assembler() -> type[ClassAssembler]:
    return ClassAssembler


@pytest.fixture
def make_class():
    return simple_class


@pytest.fixture
def recording_listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def cancel_after():
    return CancelAfterUnits
