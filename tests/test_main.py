"""
Test cases for the command line interface
"""

import json
import os
import sys

import numpy as np
import pytest
import yaml

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from face_registry.main import load_embedding, main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump({
        'storage': {'backend': 'file', 'data_dir': str(tmp_path / 'data')},
    }))
    return str(path)


@pytest.fixture
def embedding_file(tmp_path):
    path = tmp_path / 'alice.json'
    path.write_text(json.dumps([1, 2, 3, 4, 5]))
    return str(path)


def run(config_path, *args):
    return main(['--config', config_path] + list(args))


def list_people(config_path, capsys):
    capsys.readouterr()
    assert run(config_path, 'list', '--json') == 0
    return json.loads(capsys.readouterr().out)


class TestLoadEmbedding:

    def test_json(self, embedding_file):
        assert load_embedding(embedding_file) == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_npy(self, tmp_path):
        path = str(tmp_path / 'probe.npy')
        np.save(path, np.array([0.5, 0.25], dtype=np.float32))
        assert load_embedding(path) == [0.5, 0.25]

    def test_rejects_nested(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('[[1, 2], [3, 4]]')
        with pytest.raises(ValueError):
            load_embedding(str(path))


class TestCommands:

    def test_add_list_match_delete(self, config_path, embedding_file, tmp_path, capsys):
        assert run(config_path, 'add', '  Alice  ', '--embedding', embedding_file,
                   '--dob', '1990-01-01', '--gender', 'Female') == 0

        people = list_people(config_path, capsys)
        assert len(people) == 1
        assert people[0]['name'] == 'Alice'
        assert people[0]['gender'] == 'female'

        probe = tmp_path / 'probe.json'
        probe.write_text(json.dumps([1.001, 2.001, 3.001, 4.001, 5.001]))
        assert run(config_path, 'match', str(probe), '--threshold', '0.1') == 0
        assert json.loads(capsys.readouterr().out)['name'] == 'Alice'

        assert run(config_path, 'delete', '0') == 0
        assert list_people(config_path, capsys) == []

    def test_add_rejects_invalid_input(self, config_path, embedding_file, capsys):
        assert run(config_path, 'add', 'A', '--embedding', embedding_file) == 1
        assert run(config_path, 'add', 'Alice', '--embedding', embedding_file,
                   '--dob', '3000-01-01') == 1
        assert run(config_path, 'add', 'Alice', '--embedding', embedding_file,
                   '--gender', 'robot') == 1
        assert list_people(config_path, capsys) == []

    def test_add_missing_embedding_file(self, config_path, tmp_path):
        assert run(config_path, 'add', 'Alice', '--embedding', str(tmp_path / 'none.json')) == 1

    def test_add_missing_image(self, config_path, tmp_path):
        assert run(config_path, 'add', 'Alice', '--image', str(tmp_path / 'none.jpg')) == 1

    def test_edit_by_index_and_id(self, config_path, embedding_file, capsys):
        run(config_path, 'add', 'Alice', '--embedding', embedding_file)
        run(config_path, 'add', 'Bob', '--embedding', embedding_file)

        assert run(config_path, 'edit', '1', 'Robert', '--dob', '1980-05-05') == 0
        people = list_people(config_path, capsys)
        assert people[1]['name'] == 'Robert'
        assert people[1]['dob'] == '1980-05-05'

        assert run(config_path, 'edit', people[0]['id'], 'Alicia', '--by-id') == 0
        assert list_people(config_path, capsys)[0]['name'] == 'Alicia'

    def test_names_are_sanitized(self, config_path, embedding_file, capsys):
        assert run(config_path, 'add', '<b>Jane</b>  Smith', '--embedding', embedding_file) == 0
        assert list_people(config_path, capsys)[0]['name'] == 'Jane Smith'

        assert run(config_path, 'edit', '0', '<script>x</script>Jo') == 0
        assert list_people(config_path, capsys)[0]['name'] == 'xJo'

    def test_edit_replaces_omitted_fields(self, config_path, embedding_file, capsys):
        run(config_path, 'add', 'Alice', '--embedding', embedding_file,
            '--dob', '1990-01-01', '--gender', 'female')

        assert run(config_path, 'edit', '0', 'Alicia') == 0
        person = list_people(config_path, capsys)[0]
        assert person['dob'] is None
        assert person['gender'] is None

    def test_edit_help_mentions_clearing(self, config_path, capsys):
        with pytest.raises(SystemExit):
            run(config_path, 'edit', '--help')
        assert 'cleared' in capsys.readouterr().out

    def test_edit_out_of_range(self, config_path, embedding_file):
        run(config_path, 'add', 'Alice', '--embedding', embedding_file)
        assert run(config_path, 'edit', '5', 'Nobody') == 1
        assert run(config_path, 'edit', 'abc', 'Nobody') == 1
        assert run(config_path, 'edit', 'missing-id', 'Nobody', '--by-id') == 1

    def test_delete_by_id(self, config_path, embedding_file, capsys):
        run(config_path, 'add', 'Alice', '--embedding', embedding_file)
        face_id = list_people(config_path, capsys)[0]['id']

        assert run(config_path, 'delete', face_id, '--by-id') == 0
        assert run(config_path, 'delete', face_id, '--by-id') == 1

    def test_clear_requires_confirmation(self, config_path, embedding_file, capsys):
        run(config_path, 'add', 'Alice', '--embedding', embedding_file)

        assert run(config_path, 'clear') == 1
        assert len(list_people(config_path, capsys)) == 1

        assert run(config_path, 'clear', '--yes') == 0
        assert list_people(config_path, capsys) == []

    def test_match_empty_registry(self, config_path, embedding_file, capsys):
        capsys.readouterr()
        assert run(config_path, 'match', embedding_file) == 0
        result = json.loads(capsys.readouterr().out)
        assert result['name'] == 'unknown'
        assert result['distance'] == float('inf')

    def test_age(self, config_path, capsys):
        capsys.readouterr()
        assert run(config_path, 'age', '1800-01-01') == 0
        assert capsys.readouterr().out.strip() == '0'

    def test_stats(self, config_path, embedding_file, capsys):
        run(config_path, 'add', 'Alice', '--embedding', embedding_file)
        capsys.readouterr()
        assert run(config_path, 'stats') == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats['total_faces'] == 1
        assert stats['embedding_dimensions'] == [5]
