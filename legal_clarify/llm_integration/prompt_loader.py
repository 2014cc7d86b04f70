from typing import Dict, Any
import re
from pathlib import Path

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

PLACEHOLDER_PATTERN = re.compile(r'<([a-z][a-z0-9_]*)>')

def load_prompt_template(filename: str, replacements: Dict[str, Any], base_path: Path = PROMPTS_DIR) -> str:
    """
    Loads a prompt template from the prompts directory and fills its
    <placeholder> markers in a single pass. Values are inserted verbatim and
    never re-scanned, so document text containing angle brackets is safe.
    """
    prompt_file_path = base_path / filename
    if not prompt_file_path.exists():
        raise FileNotFoundError(f"Prompt template '{filename}' not found in {base_path}")

    try:
        with open(prompt_file_path, "r", encoding="utf-8") as f:
            template = f.read()
    except OSError as e:
        raise IOError(f"Failed to read prompt file at {prompt_file_path}: {e}")

    missed = sorted({name for name in PLACEHOLDER_PATTERN.findall(template) if name not in replacements})
    if missed:
        raise ValueError(f"Missing replacements for placeholders in {filename}: {missed}")

    return PLACEHOLDER_PATTERN.sub(lambda m: str(replacements[m.group(1)]), template)
