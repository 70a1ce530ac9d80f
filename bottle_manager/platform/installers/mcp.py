#!/usr/bin/env python3
"""
Bottle MCP Registration
Registers and unregisters MCP servers with Claude Code through the `claude` CLI
"""

import os
import re
import subprocess
from typing import Callable, Dict, List, Optional

from bottle_manager.errors import InstallError, ValidationError
from bottle_manager.manifest.bottle import McpServerSpec


# ${VAR} references in MCP env values and args
ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


def missing_env_vars(name: str, server: McpServerSpec) -> List[str]:
    """List every ${VAR} reference in a server definition whose variable is unset"""
    missing = []
    for key, value in sorted(server.env.items()):
        for var_name in ENV_VAR_PATTERN.findall(value):
            if var_name not in os.environ:
                missing.append(f"{key}={value} (needs ${var_name})")
    for arg in server.args:
        for var_name in ENV_VAR_PATTERN.findall(arg):
            if var_name not in os.environ:
                missing.append(f"arg '{arg}' (needs ${var_name})")
    return missing


def validate_env_vars(name: str, server: McpServerSpec) -> None:
    """
    Raises:
        ValidationError: the server references environment variables that are not set
    """
    missing = missing_env_vars(name, server)
    if missing:
        raise ValidationError(
            f"MCP server '{name}' requires environment variables that are not set:\n  "
            + "\n  ".join(missing)
        )


def expand_env_vars(value: str, warn: Optional[Callable[[str], None]] = None) -> str:
    """Substitute ${VAR} with its value; unset variables become empty strings"""
    def _replace(match):
        var_name = match.group(1)
        if var_name in os.environ:
            return os.environ[var_name]
        if warn is not None:
            warn(f"environment variable ${var_name} is not set")
        return ''

    return ENV_VAR_PATTERN.sub(_replace, value)


class McpRegistrar:
    """Wraps `claude mcp add` / `claude mcp remove`"""

    def __init__(self, claude_cmd: str = 'claude'):
        self.claude_cmd = claude_cmd

    def _run(self, item: str, args: List[str]) -> subprocess.CompletedProcess:
        cmd = [self.claude_cmd] + args
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False, shell=False)
        except OSError as e:
            raise InstallError(item, f"Failed to run {' '.join(cmd[:3])}: {e}") from e
        if result.returncode != 0:
            detail = (result.stderr or '').strip()[:200]
            reason = f"{' '.join(cmd[:3])} exited with code {result.returncode}"
            raise InstallError(item, f"{reason}: {detail}" if detail else reason)
        return result

    def build_register_args(self, name: str, package: str, version: str) -> List[str]:
        return ['mcp', 'add', name, '-s', 'user', '--', 'npx', '-y', f"{package}@{version}"]

    def build_bespoke_args(self, name: str, server: McpServerSpec) -> List[str]:
        # Format: claude mcp add <name> -s <scope> [-e KEY=VALUE]... -- <command> [args]...
        args = ['mcp', 'add', name, '-s', server.scope]
        for key, value in sorted(server.env.items()):
            args.extend(['-e', f"{key}={expand_env_vars(value)}"])
        args.append('--')
        args.append(server.command)
        args.extend(expand_env_vars(arg) for arg in server.args)
        return args

    def register(self, name: str, package: str, version: str) -> None:
        """Register a curated MCP tool (npm package run through npx)"""
        self._run(name, self.build_register_args(name, package, version))

    def register_bespoke(self, name: str, server: McpServerSpec) -> None:
        """Register a bespoke MCP server, replacing an existing registration of the same name"""
        args = self.build_bespoke_args(name, server)
        if self.is_registered(name):
            self.unregister(name)
        self._run(name, args)

    def unregister(self, name: str) -> None:
        self._run(name, ['mcp', 'remove', name])

    def is_registered(self, name: str) -> bool:
        try:
            result = subprocess.run(
                [self.claude_cmd, 'mcp', 'list'],
                capture_output=True, text=True, check=False, shell=False
            )
        except OSError:
            return False
        # Lines look like "name: command args - ✓ Connected"
        for line in (result.stdout or '').splitlines():
            if line.split(':', 1)[0].strip() == name:
                return True
        return False


def opencode_server_entry(server: McpServerSpec) -> Dict:
    """OpenCode's representation of a local MCP server"""
    return {
        'type': 'local',
        'command': [server.command] + [expand_env_vars(arg) for arg in server.args],
        'environment': {k: expand_env_vars(v) for k, v in sorted(server.env.items())},
        'enabled': True,
    }
