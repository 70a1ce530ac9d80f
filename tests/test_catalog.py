"""
Tests for bespoke bottle creation, listing and curator validation
"""
import json
from datetime import date

import pytest

from bottle_manager.core.catalog import create_bespoke, list_bottles, validate_manifest
from bottle_manager.errors import BottleNotFound, ValidationError
from bottle_manager.platform.fetch import BespokeManifestSource

from conftest import FakeManifestSource, make_manifest


@pytest.fixture
def bespoke(tmp_path):
    return BespokeManifestSource(tmp_path / 'home')


class TestCreateBespoke:
    def test_empty_bottle(self, bespoke):
        path, manifest = create_bespoke(bespoke, 'mine', today=date(2025, 3, 7))

        assert path == bespoke.manifest_path('mine')
        assert manifest.version == '2025.03.07'
        assert bespoke.fetch('mine').tools == {}

    def test_from_existing(self, bespoke):
        source = FakeManifestSource({'stable': make_manifest(tools={'ba': '0.2.1'}, plugins=['ba'])})

        _, manifest = create_bespoke(bespoke, 'mine', source=source, from_bottle='stable')

        assert manifest.tools == {'ba': '0.2.1'}
        assert manifest.plugins == ['ba']
        assert manifest.description == 'Custom bottle based on stable'

    def test_from_unknown(self, bespoke):
        with pytest.raises(BottleNotFound):
            create_bespoke(bespoke, 'mine', source=FakeManifestSource(), from_bottle='nope')

    @pytest.mark.parametrize('name', ['', 'has space', '../escape', 'dots.bad'])
    def test_invalid_names(self, bespoke, name):
        with pytest.raises(ValidationError):
            create_bespoke(bespoke, name)

    def test_existing_refused(self, bespoke):
        create_bespoke(bespoke, 'mine')
        with pytest.raises(ValidationError):
            create_bespoke(bespoke, 'mine')


class TestListBottles:
    def test_curated_and_bespoke(self, bespoke):
        create_bespoke(bespoke, 'mine')
        remote = FakeManifestSource({'stable': make_manifest('stable')})

        curated, custom = list_bottles(['stable', 'edge'], remote, bespoke)

        assert curated == [('edge', '(unable to fetch description)'), ('stable', 'stable bottle')]
        assert custom == [('mine', 'My custom tool versions')]

    def test_state_only_directories_are_not_bottles(self, bespoke):
        (bespoke.bottles_dir / 'stable').mkdir(parents=True)
        (bespoke.bottles_dir / 'stable' / 'state.json').write_text('{}')
        assert bespoke.names() == []


def write_repo(root, manifest, tools=()):
    bottle_dir = root / 'bottles' / manifest['name']
    bottle_dir.mkdir(parents=True)
    (bottle_dir / 'manifest.json').write_text(json.dumps(manifest))
    (root / 'tools').mkdir(exist_ok=True)
    for tool in tools:
        (root / 'tools' / f"{tool}.json").write_text('{}')


class TestValidateManifest:
    def test_valid(self, tmp_path):
        write_repo(tmp_path, {'name': 'stable', 'version': '2025.01.01', 'description': 'd',
                              'tools': {'ba': '0.2.1'}, 'plugins': ['ba']}, tools=['ba'])

        report = validate_manifest('stable', tmp_path)

        assert report.ok
        assert report.warnings == []

    def test_collects_every_problem(self, tmp_path):
        write_repo(tmp_path, {'name': 'edge', 'version': '1',
                              'tools': {'ba': 'latest', 'wm': '0.3.0'},
                              'plugins': ['ba', 'ba']}, tools=['wm'])

        report = validate_manifest('edge', tmp_path)

        assert not report.ok
        assert "Missing required field: description" in report.errors
        assert any("tools/ba.json" in e for e in report.errors)
        assert "Duplicate plugin: ba" in report.errors
        assert any("'latest'" in w for w in report.warnings)

    def test_wrong_shapes(self, tmp_path):
        write_repo(tmp_path, {'name': 'x', 'version': '1', 'description': 'd',
                              'tools': ['ba'], 'plugins': 'ba'})
        report = validate_manifest('x', tmp_path)
        assert "'tools' must be an object" in report.errors
        assert "'plugins' must be an array" in report.errors

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(BottleNotFound):
            validate_manifest('nope', tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / 'bottles' / 'bad').mkdir(parents=True)
        (tmp_path / 'bottles' / 'bad' / 'manifest.json').write_text('{')
        with pytest.raises(ValidationError):
            validate_manifest('bad', tmp_path)
