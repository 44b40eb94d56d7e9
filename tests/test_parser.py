import logging
from pathlib import Path

import pytest
import yaml

from vocabcore.models import Bucket, PartOfSpeech
from vocabcore.parser import (
    YAMLProcessor,
    load_collection_directory,
    load_collection_files,
)
from vocabcore.yaml_models import YAMLProcessingError, YAMLProcessorConfig, slugify

VALID_COLLECTION = {
    "collection": "Casa y familia",
    "list": "spanish-a1",
    "words": [
        {"source": "casa", "target": "Haus", "pos": "Noun"},
        {
            "source": "ser",
            "target": "sein",
            "pos": "verb",
            "explanation": "permanent state",
            "example": "Soy de Madrid.",
            "conjugation": {
                "infinitive": "ser",
                "translation": "to be",
                "sections": [{"title": "Presente", "rows": [["yo", "soy"]]}],
            },
        },
    ],
}


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path


@pytest.fixture
def processor() -> YAMLProcessor:
    return YAMLProcessor()


def test_slugify():
    assert slugify("Casa y familia") == "casa-y-familia"
    assert slugify("  Verbs: part 2! ") == "verbs-part-2"


def test_process_valid_file(processor, tmp_path):
    collection, errors = processor.process_file(
        _write(tmp_path / "casa.yaml", VALID_COLLECTION)
    )
    assert errors == []
    assert collection.id == "casa-y-familia"
    assert collection.title == "Casa y familia"
    assert collection.list_id == "spanish-a1"
    assert [w.source for w in collection.words] == ["casa", "ser"]
    assert collection.words[0].pos is PartOfSpeech.noun
    assert collection.words[1].conjugation.sections[0].rows == [("yo", "soy")]
    assert all(w.retention.bucket is Bucket.New for w in collection.words)


def test_explicit_id_wins_over_title(processor, tmp_path):
    data = dict(VALID_COLLECTION, id="familia")
    collection, _ = processor.process_file(_write(tmp_path / "f.yml", data))
    assert collection.id == "familia"


def test_invalid_words_are_collected(processor, tmp_path):
    data = {
        "collection": "Mixed",
        "words": [
            {"source": "casa", "target": "Haus"},
            {"source": "solo"},
            "not a mapping",
            {"source": "perro", "target": "Hund", "colour": "brown"},
            {"source": "  ", "target": "leer"},
        ],
    }
    collection, errors = processor.process_file(_write(tmp_path / "m.yaml", data))
    assert [w.source for w in collection.words] == ["casa"]
    assert [e.word_index for e in errors] == [1, 2, 3, 4]
    assert "m.yaml" in str(errors[0])
    assert "solo" in str(errors[0])


@pytest.mark.parametrize(
    "content, message",
    [
        ("- just\n- a list\n", "Top level"),
        ("collection: [unclosed\n", "Invalid YAML"),
        ("collection: Empty\nwords: []\n", "words"),
        ("words:\n  - {source: a, target: b}\n", "collection"),
        ("collection: X\nwords:\n  - {source: a, target: b}\nextra: 1\n", "extra"),
    ],
)
def test_file_level_errors_raise(processor, tmp_path, content, message):
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(YAMLProcessingError) as excinfo:
        processor.process_file(path)
    assert message in str(excinfo.value)


def test_missing_file_raises(processor, tmp_path):
    with pytest.raises(YAMLProcessingError, match="File not found"):
        processor.process_file(tmp_path / "absent.yaml")


def test_load_collection_files_aggregates(tmp_path):
    good = _write(tmp_path / "good.yaml", VALID_COLLECTION)
    bad = tmp_path / "bad.yaml"
    bad.write_text("- nope\n", encoding="utf-8")
    collections, errors = load_collection_files([good, bad])
    assert [c.id for c in collections] == ["casa-y-familia"]
    assert len(errors) == 1
    assert errors[0].file_path == bad


def test_load_collection_files_fail_fast(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("- nope\n", encoding="utf-8")
    with pytest.raises(YAMLProcessingError):
        load_collection_files([bad], fail_fast=True)


def test_load_collection_directory(tmp_path):
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    _write(tmp_path / "one.yaml", dict(VALID_COLLECTION, id="one"))
    _write(nested / "two.yml", dict(VALID_COLLECTION, id="two"))
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    collections, errors = load_collection_directory(
        YAMLProcessorConfig(source_directory=tmp_path)
    )
    assert errors == []
    assert sorted(c.id for c in collections) == ["one", "two"]


def test_load_collection_directory_missing(tmp_path):
    collections, errors = load_collection_directory(
        YAMLProcessorConfig(source_directory=tmp_path / "missing")
    )
    assert collections == []
    assert "does not exist" in str(errors[0])


def test_repeated_word_id_in_one_file_is_an_error(processor, tmp_path):
    data = {
        "collection": "Numbers",
        "words": [
            {"id": "1", "source": "uno", "target": "eins"},
            {"id": "1", "source": "dos", "target": "zwei"},
            {"source": "tres", "target": "drei"},
        ],
    }
    collection, errors = processor.process_file(_write(tmp_path / "n.yaml", data))
    assert [w.source for w in collection.words] == ["uno", "tres"]
    assert len(errors) == 1
    assert errors[0].word_index == 1
    assert "Duplicate word id '1'" in errors[0].message


def test_word_id_used_by_an_earlier_file_is_an_error(tmp_path):
    numbers = _write(
        tmp_path / "numbers.yaml",
        {"collection": "Numbers", "words": [{"id": "1", "source": "uno", "target": "eins"}]},
    )
    animals = _write(
        tmp_path / "animals.yaml",
        {
            "collection": "Animals",
            "words": [
                {"id": "1", "source": "perro", "target": "Hund"},
                {"source": "gato", "target": "Katze"},
            ],
        },
    )
    collections, errors = load_collection_files([numbers, animals])

    assert [[w.source for w in c.words] for c in collections] == [["uno"], ["gato"]]
    assert len(errors) == 1
    assert errors[0].file_path == animals
    assert "already used by collection 'numbers'" in errors[0].message


def test_word_id_clash_with_fail_fast_raises(tmp_path):
    first = _write(
        tmp_path / "a.yaml",
        {"collection": "A", "words": [{"id": "x", "source": "uno", "target": "eins"}]},
    )
    second = _write(
        tmp_path / "b.yaml",
        {"collection": "B", "words": [{"id": "x", "source": "dos", "target": "zwei"}]},
    )
    with pytest.raises(YAMLProcessingError, match="already used"):
        load_collection_files([first, second], fail_fast=True)


def test_load_collection_files_logs_summary(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="vocabcore.parser")
    load_collection_files([_write(tmp_path / "casa.yaml", VALID_COLLECTION)])
    assert "Processed 1 collections from 1 files with 0 errors." in caplog.messages
