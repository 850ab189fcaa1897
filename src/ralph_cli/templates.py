"""Language table, prompt template and default project files."""

from dataclasses import dataclass, field
from string import Template
from typing import Dict, List, Mapping, Optional


@dataclass(frozen=True)
class LanguageConfig:
    """Toolchain preset offered by ``ralph init``."""

    name: str
    check_command: str
    test_command: str
    description: str
    technologies: List[str] = field(default_factory=list)


LANGUAGES: Dict[str, LanguageConfig] = {
    "bun": LanguageConfig(
        name="Bun (TypeScript)",
        check_command="bun check",
        test_command="bun test",
        description="Bun runtime with TypeScript",
        technologies=["Bun", "TypeScript"],
    ),
    "node": LanguageConfig(
        name="Node.js (TypeScript)",
        check_command="npm run typecheck",
        test_command="npm test",
        description="Node.js with TypeScript",
        technologies=["Node.js", "TypeScript", "npm"],
    ),
    "python": LanguageConfig(
        name="Python",
        check_command="mypy .",
        test_command="pytest",
        description="Python with mypy type checking",
        technologies=["Python", "mypy", "pytest"],
    ),
    "go": LanguageConfig(
        name="Go",
        check_command="go build ./...",
        test_command="go test ./...",
        description="Go language",
        technologies=["Go"],
    ),
    "rust": LanguageConfig(
        name="Rust",
        check_command="cargo check",
        test_command="cargo test",
        description="Rust with Cargo",
        technologies=["Rust", "Cargo"],
    ),
    "none": LanguageConfig(
        name="None (custom)",
        check_command="echo 'no check configured'",
        test_command="echo 'no tests configured'",
        description="Custom configuration",
    ),
}

COMPLETION_SENTINEL = "<promise>COMPLETE</promise>"

PROMPT_TEMPLATE = """You are an AI developer working on this project. Your task is to implement features from the PRD.

The first attached file lists the PRD entries in .ralph/prd.json that do not pass yet.
The second attached file is the progress log.

INSTRUCTIONS:
1. Pick the highest priority entry from the attached list ("passes": false)
2. Implement that feature completely
3. Verify your changes work by running:
   - Type/build check: $checkCommand
   - Tests: $testCommand
4. Set "passes": true for that entry in .ralph/prd.json once verified
5. Append a brief note about what you did to .ralph/progress.txt
6. Create a git commit with a descriptive message for this feature
7. Only work on ONE feature per execution

IMPORTANT:
- Focus on a single feature at a time
- Ensure all checks pass before marking complete
- Write clear commit messages
- If the PRD is fully complete (all items pass), output: $sentinel

Now, read the PRD and begin working on the highest priority incomplete feature."""

DEFAULT_PRD = """[
  {
    "category": "setup",
    "description": "Example: Project builds successfully",
    "steps": [
      "Run the build command",
      "Verify no errors occur"
    ],
    "passes": false
  }
]
"""

DEFAULT_PROGRESS = "# Progress Log\n"


def generate_prompt(check_command: str, test_command: str) -> str:
    """Render the prompt written to .ralph/prompt.md by ``ralph init``."""
    return Template(PROMPT_TEMPLATE).safe_substitute(
        checkCommand=check_command,
        testCommand=test_command,
        sentinel=COMPLETION_SENTINEL,
    )


def prompt_variables(
    language: str,
    check_command: str,
    test_command: str,
    technologies: Optional[List[str]] = None,
) -> Dict[str, str]:
    """Build the ``$variable`` values available to prompt templates.

    ``language`` is a key of LANGUAGES; unknown keys are used as-is.
    """
    preset = LANGUAGES.get(language)
    if technologies is None:
        technologies = preset.technologies if preset else []
    return {
        "language": preset.name if preset else language,
        "technologies": ", ".join(technologies),
        "checkCommand": check_command,
        "testCommand": test_command,
    }


def resolve_prompt_variables(template: str, values: Mapping[str, str]) -> str:
    """Replace ``$name`` placeholders; unknown placeholders are left alone."""
    return Template(template).safe_substitute(values)
