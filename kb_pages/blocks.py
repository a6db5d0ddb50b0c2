r"""Typed content blocks that make up a knowledge-base page.

Blocks form a closed union of four dataclasses: :class:`CodeBlock`,
:class:`NotesBlock`, :class:`DiagramBlock`, and :class:`TableBlock`. Each one
carries an opaque ``id`` that stays stable for the block's lifetime and keys
its rendering target. Only code blocks have a ``language``.

The persisted JSON shape uses ``type`` with the values ``code``, ``notes``,
``mermaid`` (for diagrams), and ``table``. :func:`validate` reports every
structural problem of a raw block so a page import can reject the whole page
with an itemized list instead of accepting a partial block list.

Example
-------
>>> from kb_pages.blocks import BlockKind, create, to_payload
>>> block = create(BlockKind.CODE, block_id="block-1")
>>> to_payload(block)
{'id': 'block-1', 'type': 'code', 'content': '', 'language': 'cpp'}
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import typing as typ
import uuid

from ._constants import CODE_LANGUAGES, DEFAULT_CODE_LANGUAGE
from .errors import BlockIssue, BlockIssueCode, BlockValidationError


class BlockKind(enum.StrEnum):
    """Closed set of block kinds; the value is the in-memory name."""

    CODE = "code"
    NOTES = "notes"
    DIAGRAM = "diagram"
    TABLE = "table"

    @property
    def wire_type(self) -> str:
        """Return the ``type`` value used in persisted JSON."""
        return "mermaid" if self is BlockKind.DIAGRAM else self.value

    @classmethod
    def from_wire(cls, value: str) -> BlockKind:
        """Resolve a persisted ``type`` value, raising ``ValueError`` if unknown."""
        if value == "mermaid":
            return cls.DIAGRAM
        if value == cls.DIAGRAM.value:
            msg = f"Unknown block type: {value}"
            raise ValueError(msg)
        return cls(value)


@dc.dataclass(slots=True)
class CodeBlock:
    """Source code shown with syntax highlighting."""

    id: str
    content: str = ""
    language: str = DEFAULT_CODE_LANGUAGE
    title: str | None = None
    kind: typ.ClassVar[BlockKind] = BlockKind.CODE


@dc.dataclass(slots=True)
class NotesBlock:
    """Markdown notes; mermaid fences inside render as diagrams."""

    id: str
    content: str = ""
    title: str | None = None
    kind: typ.ClassVar[BlockKind] = BlockKind.NOTES


@dc.dataclass(slots=True)
class DiagramBlock:
    """Mermaid diagram source."""

    id: str
    content: str = ""
    title: str | None = None
    kind: typ.ClassVar[BlockKind] = BlockKind.DIAGRAM


@dc.dataclass(slots=True)
class TableBlock:
    """Comma-separated table text with a header row."""

    id: str
    content: str = ""
    title: str | None = None
    kind: typ.ClassVar[BlockKind] = BlockKind.TABLE


ContentBlock: typ.TypeAlias = CodeBlock | NotesBlock | DiagramBlock | TableBlock


def new_block_id() -> str:
    """Return a fresh opaque block id."""
    return f"block-{uuid.uuid4().hex[:12]}"


def create(kind: BlockKind, *, block_id: str | None = None) -> ContentBlock:
    """Return an empty block of ``kind`` with a fresh id and kind defaults."""
    ident = block_id or new_block_id()
    match kind:
        case BlockKind.CODE:
            return CodeBlock(id=ident)
        case BlockKind.NOTES:
            return NotesBlock(id=ident)
        case BlockKind.DIAGRAM:
            return DiagramBlock(id=ident)
        case BlockKind.TABLE:
            return TableBlock(id=ident)
        case _:
            typ.assert_never(kind)


def validate(block: object, index: int = 0) -> list[BlockIssue]:
    """Return every structural problem found on ``block``.

    Parameters
    ----------
    block : object
        Either a block dataclass or a raw mapping in the persisted JSON shape.
    index : int, optional
        Position of the block in its page, reported in each issue.

    Returns
    -------
    list[BlockIssue]
        Empty when the block is valid.
    """
    match block:
        case CodeBlock() | NotesBlock() | DiagramBlock() | TableBlock():
            payload: cabc.Mapping[str, object] = to_payload(block)
        case cabc.Mapping():
            payload = block
        case _:
            payload = {}

    issues: list[BlockIssue] = []

    def _issue(code: BlockIssueCode, message: str) -> None:
        issues.append(BlockIssue(index=index, code=code, message=message))

    block_id = payload.get("id")
    if not isinstance(block_id, str) or not block_id.strip():
        _issue(BlockIssueCode.MISSING_ID, "is missing required field 'id'")

    kind: BlockKind | None = None
    raw_type = payload.get("type")
    if raw_type is None or raw_type == "":
        _issue(BlockIssueCode.MISSING_KIND, "is missing required field 'type'")
    else:
        try:
            kind = BlockKind.from_wire(str(raw_type))
        except ValueError:
            _issue(BlockIssueCode.UNKNOWN_KIND, f"has invalid type: {raw_type}")

    content = payload.get("content")
    if not isinstance(content, str):
        _issue(BlockIssueCode.MISSING_CONTENT, "is missing required field 'content'")

    language = payload.get("language")
    if kind is BlockKind.CODE and language is not None and language not in CODE_LANGUAGES:
        _issue(BlockIssueCode.UNKNOWN_LANGUAGE, f"has unsupported language: {language}")
    return issues


def from_payload(payload: cabc.Mapping[str, typ.Any]) -> ContentBlock:
    """Build a block from a persisted mapping already accepted by :func:`validate`."""
    kind = BlockKind.from_wire(payload["type"])
    title = payload.get("title")
    block = create(kind, block_id=payload["id"])
    block.content = payload["content"]
    block.title = title if isinstance(title, str) else None
    if isinstance(block, CodeBlock):
        block.language = payload.get("language") or DEFAULT_CODE_LANGUAGE
    return block


def to_payload(block: ContentBlock) -> dict[str, str]:
    """Return the persisted JSON mapping for ``block``."""
    payload = {"id": block.id, "type": block.kind.wire_type, "content": block.content}
    if isinstance(block, CodeBlock):
        payload["language"] = block.language
    if block.title is not None:
        payload["title"] = block.title
    return payload


def parse_blocks(items: cabc.Sequence[object]) -> list[ContentBlock]:
    """Validate every raw block and convert them, or reject them all.

    Raises
    ------
    BlockValidationError
        When any block has a structural problem; ``issues`` lists all of them
        in page order.
    """
    issues: list[BlockIssue] = []
    for index, item in enumerate(items):
        issues.extend(validate(item, index))
    if issues:
        raise BlockValidationError(issues)
    return [from_payload(typ.cast("cabc.Mapping[str, typ.Any]", item)) for item in items]


class BlockList(cabc.Sequence[ContentBlock]):
    """Ordered, index-addressed blocks being edited on a page.

    Every mutation invokes ``on_change`` so previews can refresh.
    """

    def __init__(
        self,
        blocks: cabc.Iterable[ContentBlock] = (),
        *,
        on_change: cabc.Callable[[], None] | None = None,
    ) -> None:
        self._blocks: list[ContentBlock] = list(blocks)
        self._on_change = on_change

    def __getitem__(self, index: int) -> ContentBlock:  # type: ignore[override]
        return self._blocks[index]

    def __len__(self) -> int:
        return len(self._blocks)

    def add(self, kind: BlockKind, *, block_id: str | None = None) -> ContentBlock:
        """Append a new empty block of ``kind`` and return it."""
        block = create(kind, block_id=block_id)
        self._blocks.append(block)
        self._changed()
        return block

    def replace_all(self, blocks: cabc.Iterable[ContentBlock]) -> None:
        self._blocks = list(blocks)
        self._changed()

    def update(
        self,
        index: int,
        *,
        content: str | None = None,
        title: str | None = None,
        language: str | None = None,
    ) -> ContentBlock:
        """Edit the block at ``index`` in place.

        Raises
        ------
        IndexError
            When ``index`` is out of range.
        ValueError
            When ``language`` is given for a non-code block or is unsupported.
        """
        block = self._blocks[index]
        if language is not None:
            if not isinstance(block, CodeBlock):
                msg = f"Only code blocks have a language, not {block.kind} blocks"
                raise ValueError(msg)
            if language not in CODE_LANGUAGES:
                msg = f"Unsupported code language: {language}"
                raise ValueError(msg)
            block.language = language
        if content is not None:
            block.content = content
        if title is not None:
            block.title = title
        self._changed()
        return block

    def remove(self, index: int) -> ContentBlock:
        block = self._blocks.pop(index)
        self._changed()
        return block

    def move_up(self, index: int) -> None:
        """Swap the block at ``index`` with its predecessor; no-op at the top."""
        self._check_index(index)
        if index == 0:
            return
        self._swap(index, index - 1)

    def move_down(self, index: int) -> None:
        """Swap the block at ``index`` with its successor; no-op at the bottom."""
        self._check_index(index)
        if index == len(self._blocks) - 1:
            return
        self._swap(index, index + 1)

    def index_of(self, block_id: str) -> int:
        for index, block in enumerate(self._blocks):
            if block.id == block_id:
                return index
        msg = f"No block with id '{block_id}'"
        raise KeyError(msg)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._blocks):
            msg = f"Block index {index} out of range"
            raise IndexError(msg)

    def _swap(self, first: int, second: int) -> None:
        blocks = self._blocks
        blocks[first], blocks[second] = blocks[second], blocks[first]
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


__all__ = [
    "BlockKind",
    "BlockList",
    "CodeBlock",
    "ContentBlock",
    "DiagramBlock",
    "NotesBlock",
    "TableBlock",
    "create",
    "from_payload",
    "new_block_id",
    "parse_blocks",
    "to_payload",
    "validate",
]
