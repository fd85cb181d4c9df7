from pathlib import Path
from typing import Any

import yaml
from loguru import logger

PROMPTS_DIR = Path(__file__).resolve().parents[2] / "config" / "prompts"


def load_prompt(name: str, prompts_dir: Path = PROMPTS_DIR) -> dict[str, Any]:
    prompt_file = prompts_dir / f"{name}.yaml"

    if not prompt_file.exists():
        logger.error(f"Prompt file not found: {prompt_file}")
        raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

    with open(prompt_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not data.get("template"):
        raise ValueError(f"Prompt file {prompt_file} has no 'template' entry")

    logger.debug(f"Loaded prompt {name}: {len(data['template'])} chars")
    return data


def render_prompt(name: str, prompts_dir: Path = PROMPTS_DIR, **params: Any) -> tuple[str, str]:
    """Return ``(system, prompt)`` with ``params`` substituted into the template."""
    data = load_prompt(name, prompts_dir)
    extra = {k: v for k, v in data.items() if k not in {"system", "template"}}
    if "ranges" in extra and isinstance(extra["ranges"], list):
        extra["ranges"] = "\n".join(f"- {r}" for r in extra["ranges"])
    return data.get("system", "").strip(), data["template"].format(**{**extra, **params}).strip()
