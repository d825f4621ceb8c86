"""
Prompt templates for commit message generation.
"""


class PromptBuilder:
    """Build provider prompts from a unified diff."""

    def __init__(self, max_diff_lines: int = 500, subject_limit: int = 50):
        self.max_diff_lines = max_diff_lines
        self.subject_limit = subject_limit

    def build_commit_prompt(self, diff: str) -> str:
        """Conventional-commit prompt used by the OpenAI and Gemini backends."""
        return f"""Based on the following git diff, generate a concise, conventional commit message.
The message should:
- Follow conventional commit format (type: description)
- Be under {self.subject_limit} characters for the subject line
- Clearly describe what changed
- Use present tense

Git diff:
{self.truncate_diff(diff)}

Generate only the commit message, nothing else."""

    def build_local_language_prompt(self, diff: str) -> str:
        """Prompt for providers that may answer in Afaan Oromo or Amharic."""
        return f"""Based on the following git diff, generate a concise commit message.
The message should:
- Be brief and clear
- Describe what changed
- Support local languages (Afaan Oromo, Amharic) if appropriate

Git diff:
{self.truncate_diff(diff)}

Generate only the commit message, nothing else."""

    def truncate_diff(self, diff: str) -> str:
        """Cap the diff at ``max_diff_lines`` lines."""
        lines = diff.split('\n')
        if len(lines) <= self.max_diff_lines:
            return diff
        omitted = len(lines) - self.max_diff_lines
        return '\n'.join(lines[:self.max_diff_lines] + [f"... (truncated, {omitted} more lines)"])
