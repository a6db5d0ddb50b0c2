"""Common literal values used across kb_pages.

These constants keep block type names, languages, categories, and diagram
keywords centralized so the model, the renderers, and the tests import the
same values without drifting. Intended for internal use within the kb_pages
package.

Examples
--------
>>> from kb_pages import _constants
>>> "mermaid" in _constants.WIRE_BLOCK_TYPES
True
>>> _constants.DEFAULT_CODE_LANGUAGE
'cpp'
"""

DIAGRAM_LANGUAGE = "mermaid"

DIAGRAM_KEYWORDS: tuple[str, ...] = (
    "flowchart",
    "graph",
    "sequenceDiagram",
    "classDiagram",
    "stateDiagram",
    "erDiagram",
    "journey",
    "gantt",
    "pie",
    "gitGraph",
    "mindmap",
    "timeline",
    "quadrantChart",
    "xychart",
    "sankey",
    "block",
)

CODE_LANGUAGES: tuple[str, ...] = (
    "cpp",
    "csharp",
    "blueprint",
    "html",
    "css",
    "javascript",
    "typescript",
    "json",
    "python",
    "sql",
    "bash",
    "shell",
)
DEFAULT_CODE_LANGUAGE = "cpp"

WIRE_BLOCK_TYPES: tuple[str, ...] = ("code", "notes", "mermaid", "table")

CATEGORIES: tuple[str, ...] = (
    "architecture",
    "core-systems",
    "control",
    "design",
    "custom",
)
DEFAULT_CATEGORY = "custom"

PAGES_API_PATH = "/api/custom-pages"
