r"""Turn markdown notes into a structured tree and themed HTML.

The pipeline is a Python-Markdown instance with two project extensions:

* fenced blocks are lifted out before block parsing and re-inserted as
  ``codeblock`` or ``diagram`` elements, so mermaid fences can be routed to the
  diagram renderer while every other fence goes to the code highlighter;
* absolute ``http(s)`` links gain ``target="_blank"`` so they open in a new
  browsing context while internal links stay in place.

Only a fence whose language tag is exactly ``mermaid`` becomes a diagram.
``Mermaid``, ``mermaidjs``, other tags, and untagged fences render as code. An
untagged fence whose body has no newline is an inline code span.

Example
-------
>>> from kb_pages.markdown_pipeline import MarkdownPipeline
>>> tree = MarkdownPipeline().parse("```mermaid\nflowchart TD\nA-->B\n```")
>>> [element.tag for element in tree]
['diagram']
"""

from __future__ import annotations

import collections.abc as cabc
import copy
import dataclasses as dc
import re
import typing as typ
from html import escape
from xml.etree import ElementTree as ET

from markdown import Markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor

from ._constants import DIAGRAM_LANGUAGE

FENCE_OPEN_PATTERN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>[^\n]*)$")
FENCE_CLOSE_PATTERN = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*$")
LANGUAGE_PATTERN = re.compile(r"^(?P<language>[^\s\[,]+)(?:\[(?P<refs>[^\]]+)\])?")
FENCE_PLACEHOLDER = "\x02kbfence:{index}\x03"
FENCE_PLACEHOLDER_PATTERN = re.compile(r"^\x02kbfence:(\d+)\x03$")
RAW_HTML_PLACEHOLDER_PATTERN = re.compile(r"^\x02wzxhzdk:(\d+)\x03$")


@dc.dataclass(frozen=True, slots=True)
class SnippetReference:
    """Link from a code fence to a reusable snippet page."""

    slug: str
    label: str | None = None


@dc.dataclass(slots=True)
class FencedBlock:
    """A fenced block lifted out of the markdown source.

    Attributes
    ----------
    language : str | None
        First word of the info string with ``,extras`` and ``[refs]`` removed.
    content : str
        Body text with leading whitespace preserved and one trailing newline
        removed.
    references : list[SnippetReference]
        Snippet references parsed from ``lang[slug|Label,...]``.
    inline : bool
        ``True`` for an untagged single-line fence, rendered as inline code.
    diagram_index : int | None
        Position among the document's diagram fences, when this is one.
    """

    language: str | None
    content: str
    references: list[SnippetReference] = dc.field(default_factory=list)
    inline: bool = False
    diagram_index: int | None = None

    @property
    def is_diagram(self) -> bool:
        return self.language == DIAGRAM_LANGUAGE


CodeHtml = cabc.Callable[[FencedBlock], str]
DiagramHtml = cabc.Callable[[int, str], str]


def _strip_one_newline(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


def parse_info_string(info: str) -> tuple[str | None, list[SnippetReference]]:
    """Return the language tag and snippet references of a fence info string."""
    words = info.strip().split()
    if not words:
        return None, []
    match = LANGUAGE_PATTERN.match(words[0])
    if match is None:
        return None, []
    references: list[SnippetReference] = []
    raw_refs = match.group("refs")
    if raw_refs:
        for piece in raw_refs.split(","):
            slug, _, label = piece.partition("|")
            if slug.strip():
                references.append(
                    SnippetReference(slug=slug.strip(), label=label.strip() or None)
                )
    return match.group("language"), references


def client_side_diagram(_index: int, source: str) -> str:
    """Emit a placeholder that mermaid.js renders in the browser."""
    return f'<pre class="mermaid">{escape(source)}</pre>'


def plain_code_block(block: FencedBlock) -> str:
    """Emit an unhighlighted code block."""
    language = block.language or "text"
    return (
        f'<pre><code class="language-{escape(language, quote=True)}">'
        f"{escape(block.content)}</code></pre>"
    )


class FencedBlockPreprocessor(Preprocessor):
    """Replace fenced blocks with placeholders recorded on the extension."""

    def __init__(self, md: Markdown, extension: FencedBlockExtension) -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, lines: list[str]) -> list[str]:
        output: list[str] = []
        index = 0
        while index < len(lines):
            opening = FENCE_OPEN_PATTERN.match(lines[index])
            if opening is None or (
                opening.group("fence")[0] == "`" and "`" in opening.group("info")
            ):
                output.append(lines[index])
                index += 1
                continue

            fence = opening.group("fence")
            indent = len(opening.group("indent"))
            body: list[str] = []
            index += 1
            while index < len(lines):
                closing = FENCE_CLOSE_PATTERN.match(lines[index])
                if (
                    closing is not None
                    and closing.group("fence")[0] == fence[0]
                    and len(closing.group("fence")) >= len(fence)
                ):
                    index += 1
                    break
                body.append(_dedent(lines[index], indent))
                index += 1

            placeholder = self.extension.record(opening.group("info"), body)
            output.extend(["", " " * indent + placeholder, ""])
        return output


def _dedent(line: str, width: int) -> str:
    removable = len(line) - len(line.lstrip(" "))
    return line[min(width, removable) :]


class FencedBlockTreeprocessor(Treeprocessor):
    """Swap fence placeholders for structured elements, then for rendered HTML."""

    def __init__(self, md: Markdown, extension: FencedBlockExtension) -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, root: ET.Element) -> None:
        for element in list(root.iter("p")):
            if len(element) or not element.text:
                continue
            match = FENCE_PLACEHOLDER_PATTERN.match(element.text.strip())
            if match is not None:
                self._structure(element, int(match.group(1)))

        self.extension.tree = self._snapshot(root)

        for element in list(root.iter()):
            if element.tag not in {"codeblock", "diagram"}:
                continue
            block = self.extension.blocks[int(element.get("data-fence", "0"))]
            html = self.extension.render_block(block)
            tail = element.tail
            element.clear()
            element.tag = "p"
            element.text = self.md.htmlStash.store(html)
            element.tail = tail

    def _structure(self, element: ET.Element, fence_index: int) -> None:
        block = self.extension.blocks[fence_index]
        element.text = None
        if block.inline:
            code = ET.SubElement(element, "code")
            code.text = block.content
            return
        element.tag = "diagram" if block.is_diagram else "codeblock"
        element.set("data-fence", str(fence_index))
        if block.language and not block.is_diagram:
            element.set("language", block.language)
        if block.references:
            element.set(
                "references",
                ",".join(
                    f"{ref.slug}|{ref.label}" if ref.label else ref.slug
                    for ref in block.references
                ),
            )
        element.text = block.content

    def _snapshot(self, root: ET.Element) -> ET.Element:
        tree = copy.deepcopy(root)
        for element in tree.iter():
            element.attrib.pop("data-fence", None)
            if element.tag != "p" or len(element) or not element.text:
                continue
            match = RAW_HTML_PLACEHOLDER_PATTERN.match(element.text.strip())
            if match is None:
                continue
            raw = self.md.htmlStash.rawHtmlBlocks[int(match.group(1))]
            element.tag = "rawhtml"
            element.text = str(raw)
        return tree


class FencedBlockExtension(Extension):
    """Route fenced blocks to code or diagram renderers."""

    def __init__(self, *, code_html: CodeHtml, diagram_html: DiagramHtml) -> None:
        super().__init__()
        self.code_html = code_html
        self.diagram_html = diagram_html
        self.blocks: list[FencedBlock] = []
        self.tree: ET.Element | None = None
        self._diagram_count = 0

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the fence preprocessor and treeprocessor."""
        md.registerExtension(self)
        md.preprocessors.register(
            FencedBlockPreprocessor(md, self), "kb_fenced_blocks", 27
        )
        md.treeprocessors.register(
            FencedBlockTreeprocessor(md, self), "kb_fenced_blocks", 15
        )

    def reset(self) -> None:
        self.blocks = []
        self.tree = None
        self._diagram_count = 0

    def record(self, info: str, body: list[str]) -> str:
        """Store a fence and return the placeholder standing in for it."""
        language, references = parse_info_string(info)
        raw = "".join(f"{line}\n" for line in body)
        content = _strip_one_newline(raw)
        block = FencedBlock(
            language=language,
            content=content,
            references=references,
            inline=language is None and "\n" not in content,
        )
        if block.is_diagram:
            block.diagram_index = self._diagram_count
            self._diagram_count += 1
        self.blocks.append(block)
        return FENCE_PLACEHOLDER.format(index=len(self.blocks) - 1)

    def render_block(self, block: FencedBlock) -> str:
        if block.is_diagram and block.diagram_index is not None:
            return self.diagram_html(block.diagram_index, block.content)
        return self.code_html(block)


class ExternalLinkTreeprocessor(Treeprocessor):
    """Open absolute http(s) links in a new browsing context."""

    def run(self, root: ET.Element) -> None:
        for element in root.iter("a"):
            href = element.get("href") or ""
            if href.lower().startswith(("http://", "https://")):
                element.set("target", "_blank")
                element.set("rel", "noopener noreferrer")


class ExternalLinkExtension(Extension):
    """Register :class:`ExternalLinkTreeprocessor` after inline processing."""

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the external-link treeprocessor on the Markdown instance."""
        md.treeprocessors.register(ExternalLinkTreeprocessor(md), "kb_external_links", 14)


@dc.dataclass(slots=True)
class MarkdownResult:
    """Output of one pipeline pass."""

    html: str
    tree: ET.Element
    fenced_blocks: list[FencedBlock]

    @property
    def diagram_sources(self) -> list[str]:
        return [block.content for block in self.fenced_blocks if block.is_diagram]

    @property
    def code_blocks(self) -> list[FencedBlock]:
        return [
            block
            for block in self.fenced_blocks
            if not block.is_diagram and not block.inline
        ]


class MarkdownPipeline:
    """Convert markdown to a structured tree and HTML with fence routing."""

    def __init__(
        self,
        *,
        code_html: CodeHtml | None = None,
        diagram_html: DiagramHtml | None = None,
    ) -> None:
        """Configure how code fences and diagram fences become HTML.

        Parameters
        ----------
        code_html : Callable[[FencedBlock], str], optional
            Renderer for non-diagram fences; defaults to an unhighlighted
            ``<pre><code>`` block.
        diagram_html : Callable[[int, str], str], optional
            Renderer receiving the diagram's position and source; defaults to a
            ``<pre class="mermaid">`` placeholder for client-side rendering.
        """
        self.code_html = code_html or plain_code_block
        self.diagram_html = diagram_html or client_side_diagram

    def convert(
        self, text: str, *, diagram_html: DiagramHtml | None = None
    ) -> MarkdownResult:
        """Run the pipeline once and return HTML, tree, and fenced blocks."""
        fences = FencedBlockExtension(
            code_html=self.code_html, diagram_html=diagram_html or self.diagram_html
        )
        extensions: list[Extension | str] = [
            "tables",
            "sane_lists",
            fences,
            ExternalLinkExtension(),
        ]
        md = Markdown(extensions=extensions, output_format="html")
        html = md.convert(text or "")
        tree = fences.tree if fences.tree is not None else ET.Element("div")
        return MarkdownResult(html=html, tree=tree, fenced_blocks=list(fences.blocks))

    def parse(self, text: str) -> ET.Element:
        """Return the structured output tree for ``text``.

        The root is a ``div`` whose children are standard HTML elements plus
        ``codeblock`` (attributes ``language`` and ``references``), ``diagram``,
        and ``rawhtml`` nodes.
        """
        return self.convert(text).tree

    def render_html(
        self, text: str, *, diagram_html: DiagramHtml | None = None
    ) -> str:
        """Return HTML for ``text``, rendering diagrams with ``diagram_html``."""
        return self.convert(text, diagram_html=diagram_html).html

    def diagram_sources(self, text: str) -> list[str]:
        """Return the sources of every mermaid fence in document order."""
        return self.convert(text).diagram_sources


def iter_nodes(tree: ET.Element, tag: str) -> typ.Iterator[ET.Element]:
    """Yield elements of ``tag`` in document order."""
    yield from tree.iter(tag)


__all__ = [
    "ExternalLinkExtension",
    "FencedBlock",
    "FencedBlockExtension",
    "MarkdownPipeline",
    "MarkdownResult",
    "SnippetReference",
    "client_side_diagram",
    "iter_nodes",
    "parse_info_string",
    "plain_code_block",
]
