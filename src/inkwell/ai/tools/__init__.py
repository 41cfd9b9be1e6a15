"""Document tools the model may call, plus their registry and executor."""

from .add_edit_suggestion import AddEditSuggestionTool
from .errors import ErrorCode, ToolError, ToolExecutionError, ToolTimeoutError, ToolValidationError, UnknownToolError
from .executor import ExecutorConfig, ToolExecutor
from .read_document import ReadDocumentTool
from .registry import DuplicateToolError, ToolRegistry, build_default_registry
from .schemas import TOOL_DESCRIPTIONS, TOOL_NAMES, TOOL_SCHEMAS, validate_tool_input
from .types import DocumentTool, Tool, ToolSpec
from .update_concept import UpdateConceptTool
from .update_document import UpdateDocumentTool
from .update_outline import UpdateOutlineTool
from .update_stage import UpdateStageTool

__all__ = [
    "AddEditSuggestionTool",
    "DocumentTool",
    "DuplicateToolError",
    "ErrorCode",
    "ExecutorConfig",
    "ReadDocumentTool",
    "TOOL_DESCRIPTIONS",
    "TOOL_NAMES",
    "TOOL_SCHEMAS",
    "Tool",
    "ToolError",
    "ToolExecutionError",
    "ToolExecutor",
    "ToolRegistry",
    "ToolSpec",
    "ToolTimeoutError",
    "ToolValidationError",
    "UnknownToolError",
    "UpdateConceptTool",
    "UpdateDocumentTool",
    "UpdateOutlineTool",
    "UpdateStageTool",
    "build_default_registry",
    "validate_tool_input",
]
