"""
System prompts for the AI relay.

Prompt sets are YAML files in `prompts/` (one per tool: code_generator,
code_converter, ...), read with PyYAML's safe_load. Resolution order:

1) <tool>.yaml
2) <tool>.yml
3) default.yaml / default.yml
4) hardcoded DEFAULT_SYSTEM_PROMPT
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_SYSTEM_PROMPT = "You are a helpful coding assistant. Provide clear, concise, and accurate responses."


def _get_prompts_dir() -> Path:
    return Path(__file__).parent / "prompts"


def _load_file(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Prompt file {path} must contain a mapping at top-level")
        return data


def load_prompt_set(name: str) -> Dict[str, Any]:
    prompts_dir = _get_prompts_dir()

    # Tool names come from request bodies; never resolve outside prompts/.
    if name and Path(name).name == name:
        for candidate in (prompts_dir / f"{name}.yaml", prompts_dir / f"{name}.yml"):
            if candidate.exists():
                return _load_file(candidate)

    for candidate in (prompts_dir / "default.yaml", prompts_dir / "default.yml"):
        if candidate.exists():
            return _load_file(candidate)

    return {"name": "default", "prompt": DEFAULT_SYSTEM_PROMPT}


def get_system_prompt(tool: Optional[str] = None, override: Optional[str] = None) -> str:
    """
    System prompt for a relay request.

    An explicit override (the request's systemPrompt) wins over the tool's
    prompt set.
    """
    if override and override.strip():
        return override.strip()
    prompt_set = load_prompt_set(tool or "default")
    return (prompt_set.get("prompt") or DEFAULT_SYSTEM_PROMPT).strip()
