"""
SSH key generation for GitHub access.
"""

import asyncio
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

KEY_NAME = "code_buddy_id_ed25519"


@dataclass
class SSHResult:
    """Outcome of an SSH setup step."""

    success: bool
    message: str
    public_key: Optional[str] = None
    warning: Optional[str] = None


class SSHHandler:
    """Generate an ed25519 key pair and register it with ssh-agent."""

    def __init__(self, ssh_dir: Optional[Path] = None, key_name: str = KEY_NAME):
        self.ssh_dir = Path(ssh_dir or Path.home() / ".ssh")
        self.key_name = key_name
        self.private_key_path = self.ssh_dir / key_name
        self.public_key_path = self.ssh_dir / f"{key_name}.pub"

    def key_exists(self) -> bool:
        return self.private_key_path.exists() or self.public_key_path.exists()

    async def generate_ssh_key(self, email: str = "") -> SSHResult:
        """Create the key pair without a passphrase and add it to the agent."""
        if not self.ssh_dir.exists():
            self.ssh_dir.mkdir(mode=0o700, parents=True)

        if self.key_exists():
            return SSHResult(
                success=False,
                message=f"SSH key already exists at {self.private_key_path}. "
                        "Use a different name or remove existing key.",
            )

        logger.info(f"Generating SSH key at {self.private_key_path}")
        returncode, _, stderr = await self.run_command([
            "ssh-keygen",
            "-t", "ed25519",
            "-f", str(self.private_key_path),
            "-C", email,
            "-N", "",
        ])
        if returncode != 0:
            return SSHResult(success=False, message=f"Failed to generate SSH key: {stderr}")

        try:
            public_key = self.public_key_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            return SSHResult(success=False, message=f"Error reading public key: {e}")

        agent = await self.add_to_ssh_agent()
        if not agent.success:
            logger.warning(agent.message)

        return SSHResult(
            success=True,
            message="SSH key generated successfully",
            public_key=public_key,
            warning=None if agent.success else agent.message,
        )

    async def add_to_ssh_agent(self) -> SSHResult:
        returncode, _, stderr = await self.run_command(["ssh-add", "-l"])
        # Exit 1 with "no identities" means the agent runs but is empty.
        if returncode != 0 and "no identities" not in stderr.lower():
            return SSHResult(success=False, message="ssh-agent is not running. Please start it manually.")

        returncode, _, stderr = await self.run_command(["ssh-add", str(self.private_key_path)])
        if returncode != 0:
            return SSHResult(success=False, message=f"Failed to add key to ssh-agent: {stderr}")
        return SSHResult(success=True, message="SSH key added to ssh-agent")

    def get_existing_keys(self) -> List[str]:
        """Names of files in the SSH directory that look like keys."""
        try:
            names = sorted(os.listdir(self.ssh_dir))
        except OSError:
            return []
        skip = {"known_hosts", "known_hosts.old", "config", "authorized_keys"}
        return [name for name in names if name not in skip and (self.ssh_dir / name).is_file()]

    async def run_command(self, args: Sequence[str]):
        """Run ``args`` and return ``(returncode, stdout, stderr)``."""
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            logger.error(f"Failed to run {args[0]}: {e}")
            return 127, "", str(e)
        return process.returncode, stdout.decode(errors="replace").strip(), stderr.decode(errors="replace").strip()
