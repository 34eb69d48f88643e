import pytest
from task_harness.parser import (
    DEFAULT_COMPLETION_MESSAGE,
    NO_DECISION_MESSAGE,
    extract_field,
    infer_decision,
    parse_decision,
)

TOOLS = ["read_file", "write_file", "list_files", "get_context"]

# ---------------------------------------------------------------------------
# Completion detection
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "response",
    [
        "TASK COMPLETE: I have successfully listed all R files.",
        "TASK_COMPLETE: I have successfully listed all R files.",
        "task complete: I have successfully listed all R files.",
        "The task completed: I have successfully listed all R files.",
        "Task completes - I have successfully listed all R files.",
    ],
)
def test_completion_marker_variants(response):
    decision = parse_decision(response, TOOLS)
    assert decision.status == "final"
    assert decision.action is None
    assert decision.reasoning == "I have successfully listed all R files."

def test_completion_without_message_uses_default():
    decision = parse_decision("TASK COMPLETE", TOOLS)
    assert decision.status == "final"
    assert decision.reasoning == DEFAULT_COMPLETION_MESSAGE

def test_completion_wins_over_earlier_structured_block():
    response = """<TOOL_DECISION>
ACTION: write_file
INPUT: {"filepath": "a.txt", "content": "x"}
REASONING: write it
STATUS: continue
</TOOL_DECISION>
All done. TASK COMPLETE: wrote nothing"""
    decision = parse_decision(response, TOOLS)
    assert decision.status == "final"
    assert decision.action is None
    assert decision.reasoning == "wrote nothing"

# ---------------------------------------------------------------------------
# Structured block
# ---------------------------------------------------------------------------

def test_structured_block_valid():
    response = """<TOOL_DECISION>
ACTION: read_file
INPUT: {"filepath": "test.py"}
REASONING: Need to read the file to understand its contents
STATUS: continue
</TOOL_DECISION>"""
    decision = parse_decision(response, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "test.py"}
    assert decision.reasoning == "Need to read the file to understand its contents"
    assert decision.status == "continue"

def test_structured_block_surrounded_by_prose():
    response = """I'm going to read the file now.

<TOOL_DECISION>
ACTION: read_file
INPUT: {"filepath": "src/utils.py", "encoding": "utf-8"}
REASONING: Check for helper functions
STATUS: continue
</TOOL_DECISION>

This will help us understand the code."""
    decision = parse_decision(response, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "src/utils.py", "encoding": "utf-8"}

def test_structured_block_multiline_input():
    response = """<TOOL_DECISION>
ACTION: write_file
INPUT: {
  "filepath": "notes.md",
  "content": "line one\\nline two"
}
REASONING: Save notes
STATUS: continue
</TOOL_DECISION>"""
    decision = parse_decision(response, TOOLS)
    assert decision.input == {"filepath": "notes.md", "content": "line one\nline two"}
    assert decision.reasoning == "Save notes"

def test_structured_block_fenced_input():
    response = """<TOOL_DECISION>
ACTION: read_file
INPUT: ```json
{"filepath": "a.txt"}
```
REASONING: read
STATUS: continue
</TOOL_DECISION>"""
    assert parse_decision(response, TOOLS).input == {"filepath": "a.txt"}

def test_structured_block_explicit_final_keeps_fields():
    response = """<TOOL_DECISION>
ACTION: list_files
INPUT: {"directory": "."}
REASONING: Final check of files
STATUS: final
</TOOL_DECISION>"""
    decision = parse_decision(response, TOOLS)
    assert decision.status == "final"
    assert decision.action == "list_files"
    assert decision.reasoning == "Final check of files"

@pytest.mark.parametrize("status_line", ["STATUS: invalid_status\n", "STATUS:\n", ""])
def test_structured_block_bad_status_defaults_to_continue(status_line):
    response = (
        "<TOOL_DECISION>\nACTION: list_files\nINPUT: {}\nREASONING: List all files\n"
        f"{status_line}</TOOL_DECISION>"
    )
    assert parse_decision(response, TOOLS).status == "continue"

def test_structured_block_invalid_json_input(caplog):
    response = """<TOOL_DECISION>
ACTION: read_file
INPUT: {invalid json here}
REASONING: Read a file
STATUS: continue
</TOOL_DECISION>"""
    decision = parse_decision(response, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {}
    assert "Failed to parse INPUT JSON" in caplog.text

def test_structured_block_non_object_input():
    response = "<TOOL_DECISION>\nACTION: read_file\nINPUT: [1, 2]\nSTATUS: continue\n</TOOL_DECISION>"
    assert parse_decision(response, TOOLS).input == {}

def test_structured_block_windows_line_endings():
    response = (
        "<TOOL_DECISION>\r\nACTION: read_file\r\nINPUT: {\"filepath\": \"test.py\"}\r\n"
        "REASONING: Read file\r\nSTATUS: continue\r\n</TOOL_DECISION>"
    )
    decision = parse_decision(response, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "test.py"}

def test_structured_block_uses_first_block_only():
    response = (
        "<TOOL_DECISION>\nACTION: list_files\nINPUT: {}\nSTATUS: continue\n</TOOL_DECISION>\n"
        "<TOOL_DECISION>\nACTION: read_file\nINPUT: {}\nSTATUS: continue\n</TOOL_DECISION>"
    )
    assert parse_decision(response, TOOLS).action == "list_files"

def test_structured_block_on_one_line():
    response = (
        '<TOOL_DECISION>ACTION: read_file INPUT: {"filepath": "a.txt"} '
        "REASONING: read it STATUS: continue</TOOL_DECISION>"
    )
    decision = parse_decision(response, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "a.txt"}
    assert decision.reasoning == "read it"
    assert decision.status == "continue"

def test_structured_block_unknown_action_is_kept():
    response = "<TOOL_DECISION>\nACTION: rm_rf\nINPUT: {}\nSTATUS: continue\n</TOOL_DECISION>"
    assert parse_decision(response, TOOLS).action == "rm_rf"

# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def test_extract_field_stops_at_next_label():
    text = "ACTION: read_file\nREASONING: This is reasoning text\nINPUT: {}"
    assert extract_field(text, "REASONING") == "This is reasoning text"

def test_extract_field_at_end_of_text():
    text = "ACTION: read_file\nINPUT: {}\nREASONING: Final reasoning"
    assert extract_field(text, "REASONING") == "Final reasoning"

def test_extract_field_missing_label():
    assert extract_field("ACTION: read_file\nINPUT: {}", "MISSING") == ""

def test_extract_field_trims_whitespace():
    assert extract_field("ACTION:    read_file   \nINPUT: {}", "ACTION") == "read_file"

def test_extract_field_allows_colons_in_value():
    text = "REASONING: The file path is: /home/user/file.py\nACTION: next"
    assert extract_field(text, "REASONING") == "The file path is: /home/user/file.py"

def test_extract_field_stops_at_inline_label():
    text = "ACTION: list_files INPUT: {} REASONING: look around STATUS: final"
    assert extract_field(text, "ACTION") == "list_files"
    assert extract_field(text, "INPUT") == "{}"
    assert extract_field(text, "REASONING") == "look around"
    assert extract_field(text, "STATUS") == "final"

# ---------------------------------------------------------------------------
# Fallback inference
# ---------------------------------------------------------------------------

def test_fallback_no_tool_mentioned():
    decision = parse_decision("I don't know what to do next.", TOOLS)
    assert decision.action is None
    assert decision.status == "continue"
    assert decision.reasoning == NO_DECISION_MESSAGE

def test_fallback_picks_leftmost_tool():
    decision = infer_decision("I will use write_file later, after read_file.", TOOLS)
    assert decision.action == "write_file"
    assert decision.reasoning == "Inferred tool 'write_file' from response text"

def test_fallback_ignores_unavailable_tools():
    decision = parse_decision("I will use some_other_tool, or maybe write_file.", ["read_file"])
    assert decision.action is None

def test_fallback_extracts_quoted_filepath():
    decision = parse_decision("I will use read_file to read 'src/utils.py' file.", TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "src/utils.py"}

def test_fallback_extracts_double_quoted_filepath():
    decision = parse_decision('I need to read "config.json" using read_file.', TOOLS)
    assert decision.input == {"filepath": "config.json"}

def test_fallback_no_filepath_without_quotes():
    decision = parse_decision("Let me use list_files to see what we have.", TOOLS)
    assert decision.action == "list_files"
    assert decision.input == {}

def test_parse_is_idempotent():
    response = "Maybe get_context first, then read_file on 'a.py'."
    assert parse_decision(response, TOOLS) == parse_decision(response, TOOLS)

def test_parse_handles_empty_text():
    decision = parse_decision("", TOOLS)
    assert decision.action is None
    assert decision.status == "continue"