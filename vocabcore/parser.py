import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from .models import Collection, WordPair
from .yaml_models import (
    YAMLProcessingError,
    YAMLProcessorConfig,
    _RawYAMLCollectionFile,
    _RawYAMLWordEntry,
    slugify,
)

logger = logging.getLogger(__name__)


class YAMLProcessor:
    def __init__(self, config: Optional[YAMLProcessorConfig] = None):
        self.config = config

    def process_file(
        self,
        file_path: Path,
    ) -> Tuple[Collection, List[YAMLProcessingError]]:
        """
        Parse a YAML collection file into a Collection of new words.

        Parameters:
            file_path (Path): Path to the YAML collection file.

        Returns:
            Tuple[Collection, List[YAMLProcessingError]]: The collection built from every valid word, and one error per word that failed validation.

        Raises:
            YAMLProcessingError: If the file is missing or unreadable, is not valid YAML, its top level is not a mapping, or the collection-level fields fail validation.
        """
        try:
            content = file_path.read_text(encoding="utf-8")
            raw_yaml_content = yaml.safe_load(content)
        except FileNotFoundError:
            raise YAMLProcessingError(file_path, "File not found.") from None
        except IOError as e:
            raise YAMLProcessingError(
                file_path,
                f"Could not read file: {e}",
            ) from e
        except yaml.YAMLError as e:
            raise YAMLProcessingError(
                file_path,
                f"Invalid YAML syntax: {e}",
            ) from e

        if not isinstance(raw_yaml_content, dict):
            raise YAMLProcessingError(
                file_path,
                "Top level of YAML must be a dictionary (collection object).",
            )

        try:
            raw = _RawYAMLCollectionFile.model_validate(raw_yaml_content)
        except ValidationError as e:
            error_details = e.errors()[0]
            field = ".".join(map(str, error_details["loc"]))
            msg = error_details["msg"]
            raise YAMLProcessingError(
                file_path, f"Validation error in field '{field}': {msg}"
            ) from e

        collection_id = raw.id or slugify(raw.collection) or file_path.stem
        words, errors = self._process_raw_words(raw.words, file_path)
        collection = Collection(
            id=collection_id,
            title=raw.collection,
            list_id=raw.list,
            position=raw.position,
            words=words,
        )
        return collection, errors

    def _process_raw_words(
        self, raw_words: List, file_path: Path
    ) -> Tuple[List[WordPair], List[YAMLProcessingError]]:
        words: List[WordPair] = []
        errors: List[YAMLProcessingError] = []
        first_index: Dict[str, int] = {}
        for idx, raw_word in enumerate(raw_words):
            result = self._process_single_raw_word(raw_word, idx, file_path)
            if not isinstance(result, WordPair):
                errors.append(result)
            elif result.id in first_index:
                errors.append(
                    YAMLProcessingError(
                        message=(
                            f"Duplicate word id '{result.id}' "
                            f"(first used at index {first_index[result.id]})."
                        ),
                        file_path=file_path,
                        word_index=idx,
                        word_snippet=result.source[:50],
                    )
                )
            else:
                first_index[result.id] = idx
                words.append(result)
        return words, errors

    def _process_single_raw_word(
        self, raw_word: Dict, idx: int, file_path: Path
    ) -> Union[WordPair, YAMLProcessingError]:
        if not isinstance(raw_word, dict):
            return YAMLProcessingError(
                message=f"Word entry at index {idx} is not a dictionary.",
                file_path=file_path,
                word_index=idx,
            )
        try:
            entry = _RawYAMLWordEntry.model_validate(raw_word)
            data = entry.model_dump(exclude_none=True)
            return WordPair(**data)
        except ValidationError as e:
            return YAMLProcessingError(
                message=f"Word validation failed: {e}",
                file_path=file_path,
                word_index=idx,
                word_snippet=str(raw_word.get("source", ""))[:50],
            )


def _drop_foreign_ids(
    collection: Collection, id_owners: Dict[str, str], file_path: Path
) -> Tuple[Collection, List[YAMLProcessingError]]:
    """Remove words whose id already belongs to another collection."""
    kept: List[WordPair] = []
    errors: List[YAMLProcessingError] = []
    for word in collection.words:
        owner = id_owners.setdefault(word.id, collection.id)
        if owner == collection.id:
            kept.append(word)
            continue
        errors.append(
            YAMLProcessingError(
                message=(
                    f"Duplicate word id '{word.id}': already used by "
                    f"collection '{owner}'."
                ),
                file_path=file_path,
                word_snippet=word.source[:50],
            )
        )
    if len(kept) == len(collection.words):
        return collection, errors
    return collection.model_copy(update={"words": kept}), errors


def load_collection_files(
    file_paths: List[Path],
    fail_fast: bool = False,
) -> Tuple[List[Collection], List[YAMLProcessingError]]:
    """
    Process each file and aggregate collections and errors.

    Raises:
        YAMLProcessingError: The first error, when ``fail_fast`` is True.
    """
    processor = YAMLProcessor()
    collections: List[Collection] = []
    all_errors: List[YAMLProcessingError] = []
    id_owners: Dict[str, str] = {}
    for file_path in file_paths:
        try:
            collection, errors = processor.process_file(file_path)
        except YAMLProcessingError as e:
            if fail_fast:
                raise
            all_errors.append(e)
            continue
        collection, clashes = _drop_foreign_ids(collection, id_owners, file_path)
        errors.extend(clashes)
        if fail_fast and errors:
            raise errors[0]
        collections.append(collection)
        all_errors.extend(errors)

    logger.info(
        f"Processed {len(collections)} collections from {len(file_paths)} "
        f"files with {len(all_errors)} errors."
    )
    return collections, all_errors


def load_collection_directory(
    config: YAMLProcessorConfig,
) -> Tuple[List[Collection], List[YAMLProcessingError]]:
    """Process every *.yaml / *.yml file under the configured directory."""
    if not config.source_directory.exists():
        return [], [
            YAMLProcessingError(
                file_path=config.source_directory,
                message=(
                    "Source directory does not exist: "
                    f"{config.source_directory}"
                ),
            )
        ]
    yaml_files = sorted(
        list(config.source_directory.rglob("*.yaml"))
        + list(config.source_directory.rglob("*.yml"))
    )
    return load_collection_files(yaml_files, fail_fast=config.fail_fast)
