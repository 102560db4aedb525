"""Storage collaborators: the submission document store and the local profile store."""

import json
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from surveyforge.core.logging import get_logger
from surveyforge.schemas.submission import UserProfile

logger = get_logger("surveyforge.storage")

PROFILE_KEY = "userProfile"


class DocumentStore(Protocol):
    """Write-only document store for launched surveys."""

    def add(self, collection: str, document: dict[str, Any]) -> str:
        """
        Store a document.

        Args:
            collection: Collection name
            document: JSON-serializable document

        Returns:
            Id of the stored document

        Raises:
            OSError: If the document could not be written
        """
        ...


class JsonFileDocumentStore:
    """Document store writing one JSON file per document under <root>/<collection>/."""

    def __init__(self, root: Path):
        """
        Initialize store.

        Args:
            root: Directory holding one subdirectory per collection
        """
        self.root = Path(root)

    def add(self, collection: str, document: dict[str, Any]) -> str:
        """Write a document and return its generated id."""
        collection_dir = self.root / collection
        collection_dir.mkdir(parents=True, exist_ok=True)
        document_id = uuid.uuid4().hex
        path = collection_dir / f"{document_id}.json"
        path.write_text(json.dumps(document, indent=2, default=str), encoding="utf-8")
        logger.info(
            f"Stored document in {collection}",
            context={"collection": collection, "document_id": document_id},
        )
        return document_id

    def get(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        """Read a stored document back, or None if it does not exist."""
        path = self.root / collection / f"{document_id}.json"
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def list_ids(self, collection: str) -> list[str]:
        """Ids of every document in a collection."""
        collection_dir = self.root / collection
        if not collection_dir.exists():
            return []
        return sorted(p.stem for p in collection_dir.glob("*.json"))


class ProfileStore:
    """Flat JSON key-value file holding the user profile under the userProfile key."""

    def __init__(self, path: Path):
        """
        Initialize profile store.

        Args:
            path: Key-value JSON file
        """
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read local state {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Optional[UserProfile]:
        """Return the stored profile, or None when missing or unreadable."""
        raw = self._read_all().get(PROFILE_KEY)
        if raw is None:
            return None
        # Older writers stored the profile as a JSON string
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring unreadable profile: {e}")
                return None
        try:
            return UserProfile.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid profile: {e}")
            return None

    def save(self, profile: UserProfile) -> None:
        """Write the profile, keeping any other keys in the file."""
        data = self._read_all()
        data[PROFILE_KEY] = profile.model_dump(mode="json", by_alias=True, exclude_none=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug(f"Saved profile to {self.path}")
