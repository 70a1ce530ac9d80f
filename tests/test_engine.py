"""
Tests for the bottle command flows: install, update, switch, eject, status
"""
import pytest

from bottle_manager.core.engine import BottleEngine, Outcome
from bottle_manager.errors import (
    AlreadyEjected,
    BottleError,
    BottleNotFound,
    Cancelled,
    InvalidModeTransition,
    ManifestError,
    NoBottleInstalled,
    PrerequisitesNotMet,
    StateCorrupted,
)
from bottle_manager.manifest.bottle import AgentsMdSpec
from bottle_manager.manifest.state import CustomInstallMethod, CustomToolRecord, IntegrationRecord, Mode

from bottle_manager.platform.installer import SystemInstaller

from conftest import EARLIER, FakeManifestSource, custom_spec, make_manifest, make_state, mcp_server


class TestInstall:
    def test_fresh_install(self, engine, manifests, store, installer):
        manifests.add(make_manifest(tools={'ba': '0.2.1', 'wm': '0.3.0'}, plugins=['ba']))

        result = engine.install('stable')

        assert result.outcome is Outcome.APPLIED
        assert store.active_bottle() == 'stable'
        state = store.load_active()
        assert state.mode is Mode.MANAGED
        assert set(state.tools) == {'ba', 'wm'}
        assert installer.plugins == ['ba']

    def test_partial_failure_records_successes(self, engine, manifests, store, installer):
        installer.fail = {'wm'}
        manifests.add(make_manifest(tools={'ba': '0.2.1', 'wm': '0.3.0'}))

        result = engine.install('stable')

        assert set(store.load_active().tools) == {'ba'}
        assert [f.name for f in result.failures] == ['wm']

    def test_already_installed(self, engine, manifests, store, installer):
        manifests.add(make_manifest(tools={'ba': '0.2.1'}))
        store.save(make_state(tools={'ba': '0.2.1'}))

        result = engine.install('stable')

        assert result.outcome is Outcome.ALREADY_INSTALLED
        assert installer.installed == []

    def test_other_managed_bottle_points_to_switch(self, engine, manifests, store):
        manifests.add(make_manifest('edge'))
        store.save(make_state('stable'))

        with pytest.raises(BottleError, match="bottle switch edge"):
            engine.install('edge')

    def test_install_after_eject_returns_to_managed(self, engine, manifests, store):
        manifests.add(make_manifest(tools={'ba': '0.3.0'}))
        store.save(make_state(tools={'ba': '0.2.1'}, mode=Mode.EJECTED,
                              integrations={'codex': IntegrationRecord(EARLIER)}))

        engine.install('stable')

        state = store.load_active()
        assert state.mode is Mode.MANAGED
        assert state.tools['ba'].version == '0.3.0'
        assert 'codex' in state.integrations

    def test_dry_run_changes_nothing(self, engine, manifests, store, installer):
        manifests.add(make_manifest(tools={'ba': '0.2.1'}))

        result = engine.install('stable', dry_run=True)

        assert result.outcome is Outcome.DRY_RUN
        assert result.plan.add == [('ba', '0.2.1')]
        assert store.active_bottle() is None
        assert installer.installed == []

    def test_declined_confirmation(self, store, manifests, tool_source, installer):
        manifests.add(make_manifest(tools={'ba': '0.2.1'}))
        engine = BottleEngine(store, manifests, tool_source, installer,
                              confirm=lambda *args: False, prerequisites=lambda m: None)

        with pytest.raises(Cancelled):
            engine.install('stable')
        assert store.active_bottle() is None
        assert installer.installed == []

    def test_missing_prerequisites_abort(self, store, manifests, tool_source, installer):
        manifests.add(make_manifest(tools={'ba': '0.2.1'}, prerequisites={'cargo': 'Rust'}))

        def prerequisites(manifest):
            raise PrerequisitesNotMet(['cargo (install Rust: https://rustup.rs)'])

        engine = BottleEngine(store, manifests, tool_source, installer, prerequisites=prerequisites)

        with pytest.raises(PrerequisitesNotMet) as exc:
            engine.install('stable')
        assert exc.value.missing == ['cargo (install Rust: https://rustup.rs)']
        assert store.active_bottle() is None

    def test_unknown_bottle(self, engine):
        with pytest.raises(BottleNotFound):
            engine.install('nope')

    def test_custom_tools_and_mcp_servers(self, engine, manifests, store, installer, monkeypatch):
        monkeypatch.delenv('BOTTLE_TEST_TOKEN', raising=False)
        manifests.add(make_manifest(
            custom_tools={'tool': custom_spec('1.0.0')},
            mcp_servers={'docs': mcp_server(), 'secret': mcp_server({'T': '${BOTTLE_TEST_TOKEN}'})},
        ))

        result = engine.install('stable')

        assert store.load_active().custom_tools['tool'].version == '1.0.0'
        assert installer.mcp_servers == ['docs']
        assert [f.name for f in result.failures] == ['secret']

    def test_records_applied_plugins_and_servers(self, engine, manifests, store, installer):
        installer.fail = {'superego'}
        manifests.add(make_manifest(plugins=['ba', 'superego'], mcp_servers={'docs': mcp_server()}))

        engine.install('stable')

        state = store.load_active()
        assert state.plugins == ['ba']
        assert state.mcp_servers == ['docs']

    def test_bad_verify_command_is_an_item_failure(self, engine, manifests, store, installer, monkeypatch):
        monkeypatch.setattr(installer, 'verify',
                            lambda name, command: SystemInstaller.verify(installer, name, command))
        manifests.add(make_manifest(tools={'ba': '0.2.1'},
                                    custom_tools={'tool': custom_spec(verify="tool --version 'x")}))

        result = engine.install('stable')

        state = store.load_active()
        assert state.tools['ba'].version == '0.2.1'
        assert 'tool' not in state.custom_tools
        assert [f.name for f in result.failures] == ['tool']

    def test_snippet_saved(self, engine, manifests):
        manifests.add(make_manifest(tools={'ba': '0.2.1'},
                                    agents_md=AgentsMdSpec('Tools', {'ba': 'Tasks.'})))
        engine.install('stable')
        assert '### ba (0.2.1)' in engine.snippet()


class TestUpdate:
    def test_no_bottle(self, engine):
        with pytest.raises(NoBottleInstalled):
            engine.update()

    def test_ejected_refuses_and_leaves_state(self, engine, manifests, store, installer):
        manifests.add(make_manifest(tools={'ba': '0.3.0'}))
        store.save(make_state(tools={'ba': '0.2.1'}, mode=Mode.EJECTED))
        before = dict(store.records)

        with pytest.raises(InvalidModeTransition):
            engine.update()

        assert store.records == before
        assert installer.installed == []

    def test_up_to_date(self, engine, manifests, store):
        manifests.add(make_manifest(tools={'ba': '0.2.1'}))
        store.save(make_state(tools={'ba': '0.2.1'}))

        assert engine.update().outcome is Outcome.UP_TO_DATE

    def test_applies_plan_and_keeps_metadata(self, engine, manifests, store):
        manifests.add(make_manifest(version='2025.02.01', tools={'a': '1.1.0', 'c': '1.0.0'}))
        store.save(make_state(tools={'a': '1.0.0', 'b': '2.1.0'},
                              integrations={'opencode': IntegrationRecord(EARLIER)}))

        result = engine.update()

        state = store.load_active()
        assert result.outcome is Outcome.APPLIED
        assert state.bottle_version == '2025.02.01'
        assert {n: r.version for n, r in state.tools.items()} == {'a': '1.1.0', 'c': '1.0.0'}
        assert state.installed_at == EARLIER
        assert 'opencode' in state.integrations

    def test_failed_upgrade_keeps_old_version(self, engine, manifests, store, installer):
        installer.fail = {'a'}
        manifests.add(make_manifest(version='2025.02.01', tools={'a': '1.1.0'}))
        store.save(make_state(tools={'a': '1.0.0'}))

        result = engine.update()

        assert store.load_active().tools['a'].version == '1.0.0'
        assert len(result.failures) == 1

    def test_version_only_bump_is_applied(self, engine, manifests, store, installer):
        manifests.add(make_manifest(version='2025.02.01', tools={'a': '1.0.0'}))
        store.save(make_state(tools={'a': '1.0.0'}))

        engine.update()

        assert store.load_active().bottle_version == '2025.02.01'
        assert installer.installed == []

    def test_new_plugins_and_servers_are_applied(self, engine, manifests, store, installer):
        manifests.add(make_manifest(version='2025.02.01', tools={'a': '1.0.0'},
                                    plugins=['ba', 'wm'], mcp_servers={'docs': mcp_server()}))
        store.save(make_state(tools={'a': '1.0.0'}, plugins=['ba']))

        result = engine.update()

        state = store.load_active()
        assert result.outcome is Outcome.APPLIED
        assert installer.plugins == ['wm']
        assert installer.mcp_servers == ['docs']
        assert state.plugins == ['ba', 'wm']
        assert state.mcp_servers == ['docs']

    def test_plugin_added_without_version_bump(self, engine, manifests, store, installer):
        manifests.add(make_manifest(tools={'a': '1.0.0'}, plugins=['wm']))
        store.save(make_state(tools={'a': '1.0.0'}))

        assert engine.update().outcome is Outcome.APPLIED
        assert installer.plugins == ['wm']

    def test_failed_plugin_is_retried_next_time(self, engine, manifests, store, installer):
        installer.fail = {'wm'}
        manifests.add(make_manifest(version='2025.02.01', plugins=['wm']))
        store.save(make_state())

        result = engine.update()

        assert [f.name for f in result.failures] == ['wm']
        assert store.load_active().plugins == []

    def test_corrupted_state(self, engine, store):
        store.records['stable'] = {'bottle': 'stable'}
        store.set_active('stable')

        with pytest.raises(StateCorrupted):
            engine.update()


class TestSwitch:
    def test_switch_reconciles_and_carries_forward(self, engine, manifests, store, installer):
        manifests.add(make_manifest('edge', version='2025.03.01', tools={'a': '2.0.0', 'x': '1.0.0'},
                                    plugins=['wm']))
        custom = {'tool': CustomToolRecord('1.0.0', EARLIER, CustomInstallMethod.BREW)}
        store.save(make_state('stable', tools={'a': '1.0.0', 'b': '1.0.0'}, custom_tools=custom,
                              integrations={'codex': IntegrationRecord(EARLIER)}))

        result = engine.switch('edge')

        state = store.load_active()
        assert result.outcome is Outcome.APPLIED
        assert store.active_bottle() == 'edge'
        assert state.bottle == 'edge'
        assert set(state.tools) == {'a', 'x'}
        assert state.custom_tools == custom
        assert 'codex' in state.integrations
        assert state.installed_at > EARLIER
        assert result.execution.kept_installed == ['b']
        assert installer.plugins == ['wm']
        assert store.load_for('stable') is not None

    def test_same_bottle(self, engine, store):
        store.save(make_state('stable'))
        assert engine.switch('stable').outcome is Outcome.ALREADY_INSTALLED

    def test_ejected_refuses(self, engine, manifests, store):
        manifests.add(make_manifest('edge'))
        store.save(make_state('stable', mode=Mode.EJECTED))

        with pytest.raises(InvalidModeTransition):
            engine.switch('edge')
        assert store.active_bottle() == 'stable'

    def test_unknown_target(self, engine, store):
        store.save(make_state('stable'))
        with pytest.raises(BottleNotFound):
            engine.switch('nope')


class TestEject:
    def test_eject(self, engine, store):
        store.save(make_state(tools={'ba': '0.2.1'}))

        state = engine.eject()

        assert state.mode is Mode.EJECTED
        assert store.load_active().mode is Mode.EJECTED
        assert store.load_active().tools['ba'].version == '0.2.1'

    def test_already_ejected(self, engine, store):
        store.save(make_state(mode=Mode.EJECTED))
        with pytest.raises(AlreadyEjected):
            engine.eject()

    def test_declined(self, engine, store):
        store.save(make_state())
        with pytest.raises(Cancelled):
            engine.eject(confirm=lambda state: False)
        assert store.load_active().mode is Mode.MANAGED


class TestStatus:
    def test_nothing_installed(self, engine):
        report = engine.status()
        assert report.state is None
        assert report.corrupted is None

    def test_presence_and_updates(self, store, manifests, tool_source, installer):
        manifests.add(make_manifest(version='2025.02.01', tools={'ba': '0.3.0', 'wm': '0.3.0'}))
        store.save(make_state(tools={'ba': '0.2.1', 'wm': '0.3.0'}))
        engine = BottleEngine(store, manifests, tool_source, installer,
                              presence=lambda name, record: name == 'ba')

        report = engine.status(check_updates=True)

        assert report.presence == {'ba': True, 'wm': False}
        assert report.update_available
        assert report.plan.upgrade == [('ba', '0.2.1', '0.3.0')]

    def test_latest_unavailable(self, engine, store):
        store.save(make_state('gone'))
        report = engine.status(check_updates=True)
        assert report.update_error
        assert not report.update_available

    def test_registry_error_keeps_local_state(self, store, tool_source, installer):
        store.save(make_state(tools={'ba': '0.2.1'}))
        engine = BottleEngine(store, UnreachableManifests(), tool_source, installer)

        report = engine.status(check_updates=True)

        assert report.state.tools['ba'].version == '0.2.1'
        assert 'connection refused' in report.update_error


class UnreachableManifests(FakeManifestSource):
    def fetch(self, bottle):
        raise ManifestError("Failed to fetch bottles/stable/manifest.json: connection refused")


class TestCorruptedState:
    @pytest.fixture
    def corrupted(self, store):
        store.records['stable'] = {'bottle': 'stable', 'tools': 'oops'}
        store.set_active('stable')
        return store

    def test_status_reports_corruption(self, engine, corrupted):
        report = engine.status()
        assert report.state is None
        assert report.corrupted == 'stable'

    @pytest.mark.parametrize('command', ['eject', 'snippet'])
    def test_commands_needing_state_refuse(self, engine, corrupted, command):
        with pytest.raises(StateCorrupted):
            getattr(engine, command)()

    def test_install_rebuilds_record(self, engine, manifests, corrupted):
        manifests.add(make_manifest(tools={'ba': '0.2.1'}))

        engine.install('stable')

        assert corrupted.load_active().tools['ba'].version == '0.2.1'
        assert not corrupted.is_corrupted('stable')
