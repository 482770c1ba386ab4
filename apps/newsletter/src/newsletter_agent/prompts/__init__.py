"""Prompt templates for newsletter generation.

Templates live beside this module as ``.md`` files so the copy can be
edited without touching code. They use Python's str.format() syntax:
- {variable_name} - replaced with the value
- Use {{ and }} to escape literal braces (link tokens and JSON examples)
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).parent


def load_prompt(name: str) -> str:
    """Load a prompt template by name.
    
    Args:
        name: Prompt filename without extension, or with extension.
              e.g., "system", "lead_story", "system.md"
    
    Returns:
        The prompt template as a string.
    
    Raises:
        FileNotFoundError: If the prompt file doesn't exist.
    """
    if "." not in name:
        for ext in [".md", ".txt"]:
            path = PROMPTS_DIR / f"{name}{ext}"
            if path.exists():
                return path.read_text()
        raise FileNotFoundError(f"Prompt '{name}' not found in {PROMPTS_DIR}")
    
    path = PROMPTS_DIR / name
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return path.read_text()


def format_prompt(name: str, **kwargs) -> str:
    """Load and format a prompt template with the given variables.
    
    Unused variables are ignored, so one context can be shared by every
    step template.
    """
    template = load_prompt(name)
    return template.format(**kwargs).strip()


def get_system_prompt(**kwargs) -> str:
    """Get the voice/audience framing sent with every step."""
    return format_prompt("system", **kwargs)
