"""Parse compiled Java ``.class`` files and report their dependencies."""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass, field
from typing import Iterable, Optional

from dep_graph.analysis.dispatcher import DependenciesListener
from dep_graph.analysis.elements import (
    internal_to_dotted,
    java_field,
    java_method,
    java_package,
    java_type,
    package_of,
)
from dep_graph.analysis.graph_model import GraphNode, JavaRelation

LOGGER = logging.getLogger(__name__)

CLASS_MAGIC = 0xCAFEBABE
CLASS_EXTENSION = ".class"

CONSTANT_UTF8 = 1
CONSTANT_INTEGER = 3
CONSTANT_FLOAT = 4
CONSTANT_LONG = 5
CONSTANT_DOUBLE = 6
CONSTANT_CLASS = 7
CONSTANT_STRING = 8
CONSTANT_FIELDREF = 9
CONSTANT_METHODREF = 10
CONSTANT_INTERFACE_METHODREF = 11
CONSTANT_NAME_AND_TYPE = 12
CONSTANT_METHOD_HANDLE = 15
CONSTANT_METHOD_TYPE = 16
CONSTANT_DYNAMIC = 17
CONSTANT_INVOKE_DYNAMIC = 18
CONSTANT_MODULE = 19
CONSTANT_PACKAGE = 20

# Payload size in bytes for every fixed-size constant pool tag.
_CONSTANT_SIZES = {
    CONSTANT_INTEGER: 4,
    CONSTANT_FLOAT: 4,
    CONSTANT_LONG: 8,
    CONSTANT_DOUBLE: 8,
    CONSTANT_CLASS: 2,
    CONSTANT_STRING: 2,
    CONSTANT_FIELDREF: 4,
    CONSTANT_METHODREF: 4,
    CONSTANT_INTERFACE_METHODREF: 4,
    CONSTANT_NAME_AND_TYPE: 4,
    CONSTANT_METHOD_HANDLE: 3,
    CONSTANT_METHOD_TYPE: 2,
    CONSTANT_DYNAMIC: 4,
    CONSTANT_INVOKE_DYNAMIC: 4,
    CONSTANT_MODULE: 2,
    CONSTANT_PACKAGE: 2,
}

ACCESS_MODIFIERS = (
    (0x0001, "public"),
    (0x0002, "private"),
    (0x0004, "protected"),
    (0x0008, "static"),
    (0x0010, "final"),
    (0x0200, "interface"),
    (0x0400, "abstract"),
    (0x1000, "synthetic"),
    (0x2000, "annotation"),
    (0x4000, "enum"),
)

OP_LDC = 0x12
OP_LDC_W = 0x13
OP_LDC2_W = 0x14
OP_TABLESWITCH = 0xAA
OP_LOOKUPSWITCH = 0xAB
OP_GETSTATIC = 0xB2
OP_PUTSTATIC = 0xB3
OP_GETFIELD = 0xB4
OP_PUTFIELD = 0xB5
OP_INVOKEVIRTUAL = 0xB6
OP_INVOKESPECIAL = 0xB7
OP_INVOKESTATIC = 0xB8
OP_INVOKEINTERFACE = 0xB9
OP_NEW = 0xBB
OP_ANEWARRAY = 0xBD
OP_CHECKCAST = 0xC0
OP_INSTANCEOF = 0xC1
OP_WIDE = 0xC4
OP_MULTIANEWARRAY = 0xC5
OP_IINC = 0x84

READ_OPS = {OP_GETSTATIC, OP_GETFIELD}
WRITE_OPS = {OP_PUTSTATIC, OP_PUTFIELD}
INVOKE_OPS = {OP_INVOKEVIRTUAL, OP_INVOKESPECIAL, OP_INVOKESTATIC, OP_INVOKEINTERFACE}
TYPE_OPS = {OP_NEW, OP_ANEWARRAY, OP_CHECKCAST, OP_INSTANCEOF, OP_MULTIANEWARRAY}


def _operand_sizes() -> dict[int, int]:
    sizes = {0x10: 1, 0x11: 2, OP_LDC: 1, OP_LDC_W: 2, OP_LDC2_W: 2, OP_IINC: 2, 0xA9: 1, 0xBC: 1}
    sizes.update({op: 1 for op in range(0x15, 0x1A)})  # xload
    sizes.update({op: 1 for op in range(0x36, 0x3B)})  # xstore
    sizes.update({op: 2 for op in range(0x99, 0xA9)})  # if*, goto, jsr
    sizes.update({op: 2 for op in range(OP_GETSTATIC, OP_INVOKESTATIC + 1)})
    sizes.update({OP_INVOKEINTERFACE: 4, 0xBA: 4, OP_NEW: 2, OP_ANEWARRAY: 2, OP_CHECKCAST: 2, OP_INSTANCEOF: 2})
    sizes.update({OP_MULTIANEWARRAY: 3, 0xC6: 2, 0xC7: 2, 0xC8: 4, 0xC9: 4})
    return sizes


OPERAND_SIZES = _operand_sizes()

_OBJECT_TYPE = re.compile(r"L([^;<>]+);")


class ClassFormatError(ValueError):
    """Raised when bytes cannot be decoded as a class file."""


MemberRef = tuple[str, str, str]


@dataclass(slots=True)
class CodeReferences:
    """Entities referenced from one method body, in first-seen order."""

    calls: list[MemberRef] = field(default_factory=list)
    reads: list[MemberRef] = field(default_factory=list)
    writes: list[MemberRef] = field(default_factory=list)
    types: list[str] = field(default_factory=list)

    def dedupe(self) -> "CodeReferences":
        return CodeReferences(
            calls=list(dict.fromkeys(self.calls)),
            reads=list(dict.fromkeys(self.reads)),
            writes=list(dict.fromkeys(self.writes)),
            types=list(dict.fromkeys(self.types)),
        )


@dataclass(slots=True)
class MemberInfo:
    access: int
    name: str
    descriptor: str
    references: CodeReferences = field(default_factory=CodeReferences)


@dataclass(slots=True)
class ClassFile:
    """Decoded subset of a class file. Names are internal (``java/lang/Object``)."""

    name: str
    access: int
    super_name: Optional[str]
    interfaces: list[str]
    fields: list[MemberInfo]
    methods: list[MemberInfo]
    major_version: int = 0


def access_modifiers(access: int) -> tuple[str, ...]:
    return tuple(label for flag, label in ACCESS_MODIFIERS if access & flag)


def descriptor_types(descriptor: str) -> list[str]:
    """Return internal names of the object types mentioned by a descriptor."""

    return list(dict.fromkeys(_OBJECT_TYPE.findall(descriptor)))


def _class_reference(internal_name: str) -> Optional[str]:
    """Map a ``CONSTANT_Class`` name to an object type, unwrapping arrays."""

    if internal_name.startswith("["):
        types = descriptor_types(internal_name)
        return types[0] if types else None
    return internal_name


class _Cursor:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def _unpack(self, fmt: str) -> int:
        try:
            (value,) = struct.unpack_from(fmt, self.data, self.offset)
        except struct.error as exc:
            raise ClassFormatError(f"Truncated class file at offset {self.offset}") from exc
        self.offset += struct.calcsize(fmt)
        return value

    def u1(self) -> int:
        return self._unpack(">B")

    def u2(self) -> int:
        return self._unpack(">H")

    def u4(self) -> int:
        return self._unpack(">I")

    def take(self, length: int) -> bytes:
        end = self.offset + length
        if end > len(self.data):
            raise ClassFormatError(f"Truncated class file at offset {self.offset}")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk


class ConstantPool:
    def __init__(self, entries: list[Optional[tuple]]) -> None:
        self._entries = entries

    def _entry(self, index: int, *tags: int) -> tuple:
        if index <= 0 or index >= len(self._entries) or self._entries[index] is None:
            raise ClassFormatError(f"Invalid constant pool index {index}")
        entry = self._entries[index]
        if tags and entry[0] not in tags:
            raise ClassFormatError(f"Constant pool entry {index} has tag {entry[0]}, expected {tags}")
        return entry

    def tag(self, index: int) -> int:
        return self._entry(index)[0]

    def utf8(self, index: int) -> str:
        return self._entry(index, CONSTANT_UTF8)[1]

    def class_name(self, index: int) -> str:
        return self.utf8(self._entry(index, CONSTANT_CLASS)[1])

    def member_ref(self, index: int) -> MemberRef:
        _, class_index, nat_index = self._entry(
            index, CONSTANT_FIELDREF, CONSTANT_METHODREF, CONSTANT_INTERFACE_METHODREF
        )
        _, name_index, descriptor_index = self._entry(nat_index, CONSTANT_NAME_AND_TYPE)
        return self.class_name(class_index), self.utf8(name_index), self.utf8(descriptor_index)


def _read_constant_pool(cursor: _Cursor) -> ConstantPool:
    count = cursor.u2()
    entries: list[Optional[tuple]] = [None] * max(count, 1)
    index = 1
    while index < count:
        tag = cursor.u1()
        if tag == CONSTANT_UTF8:
            raw = cursor.take(cursor.u2())
            entries[index] = (tag, raw.decode("utf-8", errors="replace"))
        elif tag in (CONSTANT_CLASS, CONSTANT_STRING, CONSTANT_METHOD_TYPE, CONSTANT_MODULE, CONSTANT_PACKAGE):
            entries[index] = (tag, cursor.u2())
        elif tag in (
            CONSTANT_FIELDREF,
            CONSTANT_METHODREF,
            CONSTANT_INTERFACE_METHODREF,
            CONSTANT_NAME_AND_TYPE,
            CONSTANT_DYNAMIC,
            CONSTANT_INVOKE_DYNAMIC,
        ):
            entries[index] = (tag, cursor.u2(), cursor.u2())
        elif tag in _CONSTANT_SIZES:
            entries[index] = (tag, cursor.take(_CONSTANT_SIZES[tag]))
        else:
            raise ClassFormatError(f"Unknown constant pool tag {tag} at index {index}")
        # Long and double constants occupy two slots.
        index += 2 if tag in (CONSTANT_LONG, CONSTANT_DOUBLE) else 1
    return ConstantPool(entries)


def _s4(code: bytes, offset: int) -> int:
    try:
        return struct.unpack_from(">i", code, offset)[0]
    except struct.error as exc:
        raise ClassFormatError(f"Truncated switch at offset {offset}") from exc


def _u2(code: bytes, offset: int) -> int:
    if offset + 2 > len(code):
        raise ClassFormatError(f"Truncated instruction at offset {offset}")
    return (code[offset] << 8) | code[offset + 1]


def _instruction_length(code: bytes, pc: int) -> int:
    opcode = code[pc]
    if opcode in (OP_TABLESWITCH, OP_LOOKUPSWITCH):
        base = pc + 1 + (-(pc + 1) % 4)
        if opcode == OP_TABLESWITCH:
            low, high = _s4(code, base + 4), _s4(code, base + 8)
            if high < low:
                raise ClassFormatError(f"Invalid tableswitch bounds at offset {pc}")
            return base + 12 + (high - low + 1) * 4 - pc
        pairs = _s4(code, base + 4)
        if pairs < 0:
            raise ClassFormatError(f"Invalid lookupswitch size at offset {pc}")
        return base + 8 + pairs * 8 - pc
    if opcode == OP_WIDE:
        if pc + 1 >= len(code):
            raise ClassFormatError(f"Truncated wide instruction at offset {pc}")
        return 6 if code[pc + 1] == OP_IINC else 4
    return 1 + OPERAND_SIZES.get(opcode, 0)


def scan_code(code: bytes, pool: ConstantPool) -> CodeReferences:
    """Walk a method body and collect the members and types it references."""

    refs = CodeReferences()
    pc = 0
    while pc < len(code):
        opcode = code[pc]
        length = _instruction_length(code, pc)
        if pc + length > len(code):
            raise ClassFormatError(f"Instruction at offset {pc} runs past the end of the code")

        if opcode in READ_OPS:
            refs.reads.append(pool.member_ref(_u2(code, pc + 1)))
        elif opcode in WRITE_OPS:
            refs.writes.append(pool.member_ref(_u2(code, pc + 1)))
        elif opcode in INVOKE_OPS:
            refs.calls.append(pool.member_ref(_u2(code, pc + 1)))
        elif opcode in TYPE_OPS:
            target = _class_reference(pool.class_name(_u2(code, pc + 1)))
            if target:
                refs.types.append(target)
        elif opcode in (OP_LDC, OP_LDC_W):
            index = code[pc + 1] if opcode == OP_LDC else _u2(code, pc + 1)
            if pool.tag(index) == CONSTANT_CLASS:
                target = _class_reference(pool.class_name(index))
                if target:
                    refs.types.append(target)
        pc += length
    return refs.dedupe()


def _skip_attributes(cursor: _Cursor) -> None:
    for _ in range(cursor.u2()):
        cursor.u2()
        cursor.take(cursor.u4())


def _read_member(cursor: _Cursor, pool: ConstantPool, *, with_code: bool) -> MemberInfo:
    access = cursor.u2()
    member = MemberInfo(access=access, name=pool.utf8(cursor.u2()), descriptor=pool.utf8(cursor.u2()))
    for _ in range(cursor.u2()):
        attribute_name = pool.utf8(cursor.u2())
        body = cursor.take(cursor.u4())
        if with_code and attribute_name == "Code":
            code_cursor = _Cursor(body)
            code_cursor.u2()  # max_stack
            code_cursor.u2()  # max_locals
            member.references = scan_code(code_cursor.take(code_cursor.u4()), pool)
    return member


def parse_class(data: bytes) -> ClassFile:
    """Decode the structure of a class file held in ``data``."""

    cursor = _Cursor(bytes(data))
    if cursor.u4() != CLASS_MAGIC:
        raise ClassFormatError("Missing 0xCAFEBABE magic number")
    cursor.u2()  # minor_version
    major_version = cursor.u2()
    pool = _read_constant_pool(cursor)

    access = cursor.u2()
    name = pool.class_name(cursor.u2())
    super_index = cursor.u2()
    super_name = pool.class_name(super_index) if super_index else None
    interfaces = [pool.class_name(cursor.u2()) for _ in range(cursor.u2())]
    fields = [_read_member(cursor, pool, with_code=False) for _ in range(cursor.u2())]
    methods = [_read_member(cursor, pool, with_code=True) for _ in range(cursor.u2())]
    _skip_attributes(cursor)

    return ClassFile(
        name=name,
        access=access,
        super_name=super_name,
        interfaces=interfaces,
        fields=fields,
        methods=methods,
        major_version=major_version,
    )


@dataclass
class ClassAnalysisStats:
    """Counters updated while class files are read."""

    classes_total: int = 0
    classes_loaded: int = 0
    classes_failed: int = 0

    def reset(self) -> None:
        self.classes_total = 0
        self.classes_loaded = 0
        self.classes_failed = 0

    def summary(self) -> str:
        return f"{self.classes_loaded}/{self.classes_total} classes loaded. {self.classes_failed} failed."


class ClassFileReader:
    """Turn one class file into dependency events, parents before children."""

    def __init__(self, stats: ClassAnalysisStats) -> None:
        self.stats = stats

    def read(
        self,
        data: bytes,
        listener: DependenciesListener,
        container: GraphNode | None = None,
    ) -> GraphNode:
        """Parse ``data`` and emit its dependencies. Nothing is emitted for a malformed class."""

        class_file = parse_class(data)
        return self.emit(class_file, listener, container)

    def emit(
        self,
        class_file: ClassFile,
        listener: DependenciesListener,
        container: GraphNode | None = None,
    ) -> GraphNode:
        type_name = internal_to_dotted(class_file.name)
        type_node = java_type(
            type_name,
            access=class_file.access,
            modifiers=access_modifiers(class_file.access),
            major_version=class_file.major_version,
        )

        listener.new_dep(java_package(package_of(type_name)), type_node, JavaRelation.PACKAGE_MEMBER)
        if container is not None:
            listener.new_dep(container, type_node, JavaRelation.CLASS_FILE)
        if class_file.super_name:
            listener.new_dep(type_node, java_type(internal_to_dotted(class_file.super_name)), JavaRelation.EXTENDS)
        for interface in class_file.interfaces:
            listener.new_dep(type_node, java_type(internal_to_dotted(interface)), JavaRelation.IMPLEMENTS)

        for member in class_file.fields:
            field_node = java_field(type_name, member.name, member.descriptor, access=member.access)
            listener.new_dep(type_node, field_node, JavaRelation.MEMBER_FIELD)
            self._emit_types(field_node, descriptor_types(member.descriptor), listener)

        for member in class_file.methods:
            method_node = java_method(type_name, member.name, member.descriptor, access=member.access)
            listener.new_dep(type_node, method_node, JavaRelation.MEMBER_METHOD)
            self._emit_types(method_node, descriptor_types(member.descriptor), listener)
            self._emit_code(method_node, member.references, listener)

        return type_node

    @staticmethod
    def _emit_types(source: GraphNode, types: Iterable[str], listener: DependenciesListener) -> None:
        for internal_name in types:
            listener.new_dep(source, java_type(internal_to_dotted(internal_name)), JavaRelation.REFERENCES)

    def _emit_code(self, method_node: GraphNode, refs: CodeReferences, listener: DependenciesListener) -> None:
        for owner, name, descriptor in refs.calls:
            target = _class_reference(owner)
            if target:
                listener.new_dep(method_node, java_method(internal_to_dotted(target), name, descriptor), JavaRelation.CALLS)
        for owner, name, descriptor in refs.reads:
            listener.new_dep(method_node, java_field(internal_to_dotted(owner), name, descriptor), JavaRelation.READS)
        for owner, name, descriptor in refs.writes:
            listener.new_dep(method_node, java_field(internal_to_dotted(owner), name, descriptor), JavaRelation.WRITES)
        self._emit_types(method_node, refs.types, listener)


__all__ = [
    "CLASS_EXTENSION",
    "ClassAnalysisStats",
    "ClassFile",
    "ClassFileReader",
    "ClassFormatError",
    "CodeReferences",
    "MemberInfo",
    "access_modifiers",
    "descriptor_types",
    "parse_class",
    "scan_code",
]
