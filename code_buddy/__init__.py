"""
code_buddy - a personal Git assistant.

Wraps everyday git commands (status, branches, repository info, SSH key
setup) and adds a watch mode that runs tests and lint, writes a commit
message (optionally with OpenAI, Gemini or Addis AI) and commits and pushes
once file changes settle.
"""

__version__ = "1.0.0"
__author__ = "code_buddy contributors"

from code_buddy.config.settings import Settings, WorkflowConfig
from code_buddy.core import PipelineOutcome, WorkflowPipeline

__all__ = ["Settings", "WorkflowConfig", "WorkflowPipeline", "PipelineOutcome"]
