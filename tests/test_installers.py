"""
Tests for package manager installers, MCP registration and the system installer

No subprocess is spawned: command builders are checked directly and
run_command / availability are monkeypatched.
"""
import subprocess

import pytest
import requests

from bottle_manager.errors import BottleNotFound, InstallError, ManifestError
from bottle_manager.manifest.bottle import CustomToolSpec, McpServerSpec
from bottle_manager.manifest.state import CustomInstallMethod, InstallMethod
from bottle_manager.manifest.tool import ToolDefinition, ToolType
from bottle_manager.platform.fetch import RemoteManifestSource, RemoteRegistry
from bottle_manager.platform.installer import SystemInstaller
from bottle_manager.platform.installers import CargoInstaller, HomebrewInstaller, McpRegistrar
from bottle_manager.platform.installers import binary as binary_module
from bottle_manager.platform.installers import mcp as mcp_module
from bottle_manager.platform.installers.binary import BinaryInstaller


class TestCommandBuilders:
    def test_cargo_pinned(self):
        assert CargoInstaller().build_install_command('ba', '0.2.1') == ['cargo', 'install', 'ba@0.2.1']

    def test_cargo_unpinned_quiet(self):
        cmd = CargoInstaller(quiet_mode=True).build_install_command('ba', 'latest')
        assert cmd == ['cargo', 'install', 'ba', '--quiet']

    def test_brew_ignores_version(self):
        cmd = HomebrewInstaller().build_install_command('cloud-atlas-ai/tap/ba', '0.2.1')
        assert cmd == ['brew', 'install', 'cloud-atlas-ai/tap/ba']

    def test_mcp_register(self):
        args = McpRegistrar().build_register_args('oh-mcp', '@cloud-atlas-ai/oh-mcp', '0.1.0')
        assert args == ['mcp', 'add', 'oh-mcp', '-s', 'user', '--', 'npx', '-y', '@cloud-atlas-ai/oh-mcp@0.1.0']

    def test_mcp_bespoke_expands_env(self, monkeypatch):
        monkeypatch.setenv('BOTTLE_TEST_TOKEN', 'abc')
        server = McpServerSpec(command='docs-mcp', args=['--token', '${BOTTLE_TEST_TOKEN}'],
                               env={'Z': '1', 'A': '${BOTTLE_TEST_TOKEN}'}, scope='project')

        args = McpRegistrar().build_bespoke_args('docs', server)

        assert args == ['mcp', 'add', 'docs', '-s', 'project', '-e', 'A=abc', '-e', 'Z=1',
                        '--', 'docs-mcp', '--token', 'abc']


class TestBaseInstaller:
    def test_missing_package_manager(self, monkeypatch):
        cargo = CargoInstaller()
        monkeypatch.setattr(cargo, 'is_available', lambda: False)
        with pytest.raises(InstallError, match='cargo not found'):
            cargo.install('ba', '0.2.1')

    def test_retries_then_reports_stderr(self, monkeypatch):
        cargo = CargoInstaller(retry_on_failure=2)
        calls = []

        def run_command(cmd, check=True):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 101, '', 'error: could not compile')

        monkeypatch.setattr(cargo, 'is_available', lambda: True)
        monkeypatch.setattr(cargo, 'run_command', run_command)
        monkeypatch.setattr('bottle_manager.platform.installers.base.time.sleep', lambda s: None)

        with pytest.raises(InstallError, match='could not compile'):
            cargo.install('ba', '0.2.1')
        assert len(calls) == 2


@pytest.fixture
def system(monkeypatch):
    installer = SystemInstaller()
    calls = []
    for name in ('cargo', 'brew', 'npm'):
        backend = getattr(installer, name)
        monkeypatch.setattr(backend, 'install',
                            lambda package, version, _name=name: calls.append((_name, package, version)))
    installer.calls = calls
    return installer


class TestSystemInstaller:
    def test_prefers_cargo(self, system, monkeypatch):
        monkeypatch.setattr(system.cargo, 'is_available', lambda: True)
        definition = ToolDefinition('ba', ToolType.BINARY, 'ba')

        assert system.install(definition, '0.2.1') is InstallMethod.CARGO
        assert system.calls == [('cargo', 'ba', '0.2.1')]

    def test_falls_back_to_brew_with_formula(self, system, monkeypatch):
        monkeypatch.setattr(system.cargo, 'is_available', lambda: False)
        monkeypatch.setattr(system.brew, 'is_available', lambda: True)
        definition = ToolDefinition('ba', ToolType.BINARY, 'ba', install={'brew': 'cloud-atlas-ai/tap/ba'})

        assert system.install(definition, '0.2.1') is InstallMethod.BREW
        assert system.calls == [('brew', 'cloud-atlas-ai/tap/ba', '0.2.1')]

    def test_no_package_manager(self, system, monkeypatch):
        monkeypatch.setattr(system.cargo, 'is_available', lambda: False)
        monkeypatch.setattr(system.brew, 'is_available', lambda: False)
        with pytest.raises(InstallError, match='Neither cargo nor brew'):
            system.install(ToolDefinition('ba', ToolType.BINARY, 'ba'), '0.2.1')

    def test_mcp_tools_are_registered(self, system, monkeypatch):
        registered = []
        monkeypatch.setattr(system.mcp, 'register', lambda *args: registered.append(args))

        method = system.install(ToolDefinition('oh-mcp', ToolType.MCP, '@cloud-atlas-ai/oh-mcp'), '0.1.0')

        assert method is InstallMethod.MCP
        assert registered == [('oh-mcp', '@cloud-atlas-ai/oh-mcp', '0.1.0')]

    def test_custom_tool_first_available_method(self, system, monkeypatch):
        monkeypatch.setattr(system.brew, 'is_available', lambda: False)
        monkeypatch.setattr(system.npm, 'is_available', lambda: True)
        spec = CustomToolSpec('1.0.0', {CustomInstallMethod.BREW: 'acme/tool',
                                        CustomInstallMethod.NPM: '@acme/tool'})

        assert system.install_custom('tool', spec) is CustomInstallMethod.NPM
        assert system.calls == [('npm', '@acme/tool', '1.0.0')]

    def test_custom_tool_nothing_available(self, system, monkeypatch):
        monkeypatch.setattr(system.brew, 'is_available', lambda: False)
        spec = CustomToolSpec('1.0.0', {CustomInstallMethod.BREW: 'acme/tool'})
        with pytest.raises(InstallError, match='brew not available'):
            system.install_custom('tool', spec)

    def test_verify_with_unbalanced_quote_is_install_error(self, system):
        with pytest.raises(InstallError, match='could not run'):
            system.verify('tool', "tool --version 'x")

    def test_binary_into_unwritable_dir(self, tmp_path, monkeypatch):
        blocker = tmp_path / 'bin'
        blocker.write_text('not a directory')
        binary = BinaryInstaller(bin_dir=blocker / 'nested')
        monkeypatch.setattr(binary_module.requests, 'get',
                            lambda url, timeout=None, headers=None: FakeResponse(200, b'\x7fELF'))

        with pytest.raises(InstallError, match='Failed to write'):
            binary.install('tool', 'https://example.test/tool-{version}', '1.0.0')


class TestMcpRegistrar:
    @pytest.fixture
    def registrar(self, monkeypatch):
        registrar = McpRegistrar()
        registrar.calls = []
        listing = "docs-extra: npx docs-extra - ✓ Connected\ndocs: npx docs-mcp - ✓ Connected\n"

        def run(cmd, **kwargs):
            registrar.calls.append(cmd[1:])
            stdout = registrar.listing if cmd[1:] == ['mcp', 'list'] else ''
            return subprocess.CompletedProcess(cmd, 0, stdout, '')

        registrar.listing = listing
        monkeypatch.setattr(mcp_module.subprocess, 'run', run)
        return registrar

    def test_is_registered_matches_whole_name(self, registrar):
        registrar.listing = "docs-extra: npx docs-extra - ✓ Connected\n"
        assert registrar.is_registered('docs-extra')
        assert not registrar.is_registered('docs')

    def test_bespoke_registration_replaces_existing(self, registrar):
        registrar.register_bespoke('docs', McpServerSpec(command='docs-mcp'))

        assert registrar.calls == [
            ['mcp', 'list'],
            ['mcp', 'remove', 'docs'],
            ['mcp', 'add', 'docs', '-s', 'user', '--', 'docs-mcp'],
        ]

    def test_bespoke_registration_when_absent(self, registrar):
        registrar.listing = ''
        registrar.register_bespoke('docs', McpServerSpec(command='docs-mcp'))
        assert registrar.calls[-1] == ['mcp', 'add', 'docs', '-s', 'user', '--', 'docs-mcp']

class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload
        self.content = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.payload is None:
            raise ValueError("no JSON")
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        return self.response


class TestRemoteRegistry:
    def test_fetch_manifest(self):
        session = FakeSession(FakeResponse(200, {'name': 'stable', 'version': '2025.01.01'}))
        source = RemoteManifestSource(RemoteRegistry('https://example.test/', session=session))

        manifest = source.fetch('stable')

        assert manifest.version == '2025.01.01'
        assert session.urls == ['https://example.test/bottles/stable/manifest.json']

    def test_404_is_not_found(self):
        source = RemoteManifestSource(RemoteRegistry('https://example.test', session=FakeSession(FakeResponse(404))))
        with pytest.raises(BottleNotFound):
            source.fetch('nope')

    def test_bad_json(self):
        source = RemoteManifestSource(RemoteRegistry('https://example.test', session=FakeSession(FakeResponse(200))))
        with pytest.raises(ManifestError):
            source.fetch('stable')
