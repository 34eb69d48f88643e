# run.py
# Entry point. Config and wiring only, no logic lives here.
#
# Credentials come from TASK_HARNESS_ASSISTANT_ID / TASK_HARNESS_API_KEY
# (or a .env file). The assistant id is any OpenRouter model slug.
# https://openrouter.ai/models

import logging

from task_harness import display
from task_harness.harness import run_task
from task_harness.tools import DEFAULT_REGISTRY, tool_preset

# Example tasks: one read-only, one that needs approval for a write.
TASKS = [
    ("List all Python files in this directory and describe what they do.", "read_only"),
    ("Create notes/todo.md with a checklist of three next steps for this project.", "code_generation"),
]


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    display.print_tools(DEFAULT_REGISTRY)

    for task, preset in TASKS:
        result = run_task(task, allowed_tools=tool_preset(preset), max_iterations=6)
        display.print_result(result)


if __name__ == "__main__":
    main()
