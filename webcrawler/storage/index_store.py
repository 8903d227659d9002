"""
Index store for crawled page documents.
Supports Elasticsearch and file-based storage.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from elasticsearch import AsyncElasticsearch, NotFoundError

from ..errors import IndexingError
from ..models import PageDocument
from ..utils.config import ElasticsearchConfig

DEFAULT_TENANT = "default"
SEARCH_ALL_SIZE = 1000


def get_index_name(prefix: Optional[str], tenant_id: Optional[str] = None) -> Optional[str]:
    """
    Derive the index name as ``prefix-tenant``.

    A blank prefix disables indexing and yields None. A blank tenant falls back
    to ``default``.
    """
    if prefix is None or not prefix.strip():
        return None
    tenant = tenant_id if tenant_id and tenant_id.strip() else DEFAULT_TENANT
    return f"{prefix}-{tenant}"


def _require(value: Optional[str], name: str):
    if value is None or not value.strip():
        raise ValueError(f"{name} must not be blank")


class IndexStore:
    """Abstract base class for index stores."""

    async def initialize(self):
        """Initialize the store."""
        pass

    async def index_document(self, index_name: str, document: PageDocument) -> str:
        """Store a document and return the id it was stored under."""
        raise NotImplementedError

    async def get_document(self, index_name: str, document_id: str) -> Optional[PageDocument]:
        """Retrieve a document by id, None when absent."""
        raise NotImplementedError

    async def search_all(self, index_name: str) -> List[PageDocument]:
        """Return every document in the index."""
        raise NotImplementedError

    async def create_index(self, index_name: str, body: Optional[Dict[str, Any]] = None) -> bool:
        """Create an index. Returns False when it already exists."""
        raise NotImplementedError

    async def delete_index(self, index_name: str) -> bool:
        """Delete an index. Returns False when it did not exist."""
        raise NotImplementedError

    async def create_alias(self, index_name: str, alias_name: str):
        raise NotImplementedError

    async def delete_alias(self, index_name: str, alias_name: str):
        raise NotImplementedError

    async def create_template(self, template_name: str, index_patterns: List[str],
                              template: Optional[Dict[str, Any]] = None):
        raise NotImplementedError

    async def delete_template(self, template_name: str):
        raise NotImplementedError

    async def close(self):
        """Close store connections."""
        pass


class ElasticsearchIndexStore(IndexStore):
    """Index store backed by an Elasticsearch cluster."""

    def __init__(self, config: Optional[ElasticsearchConfig] = None,
                 client: Optional[AsyncElasticsearch] = None):
        self.config = config or ElasticsearchConfig()
        self.logger = logging.getLogger(__name__)

        if client is None:
            auth = None
            if self.config.username:
                auth = (self.config.username, self.config.password or "")
            client = AsyncElasticsearch(hosts=self.config.hosts, basic_auth=auth)
        self.client = client

    async def index_document(self, index_name: str, document: PageDocument) -> str:
        _require(index_name, "index_name")
        if document is None:
            raise ValueError("document must not be None")

        body = document.to_dict()
        body.pop('id', None)
        try:
            if document.id and document.id.strip():
                response = await self.client.index(index=index_name, id=document.id, document=body)
            else:
                response = await self.client.index(index=index_name, document=body)
        except Exception as e:
            self.logger.error(f"Failed to index {document.url} into {index_name}: {e}")
            raise IndexingError(f"Failed to index {document.url} into {index_name}: {e}",
                                index_name=index_name) from e

        document_id = response['_id']
        self.logger.debug(f"Indexed {document.url} into {index_name} with id {document_id}")
        return document_id

    async def get_document(self, index_name: str, document_id: str) -> Optional[PageDocument]:
        _require(index_name, "index_name")
        _require(document_id, "document_id")
        try:
            response = await self.client.get(index=index_name, id=document_id)
        except NotFoundError:
            self.logger.debug(f"Document {document_id} not found in {index_name}")
            return None
        except Exception as e:
            raise IndexingError(f"Failed to get document {document_id} from {index_name}: {e}",
                                index_name=index_name) from e

        document = PageDocument.from_dict(response['_source'])
        document.id = response['_id']
        return document

    async def search_all(self, index_name: str) -> List[PageDocument]:
        _require(index_name, "index_name")
        try:
            response = await self.client.search(
                index=index_name, query={'match_all': {}}, size=SEARCH_ALL_SIZE
            )
        except Exception as e:
            raise IndexingError(f"Failed to search {index_name}: {e}", index_name=index_name) from e

        documents = []
        for hit in response['hits']['hits']:
            source = hit.get('_source')
            if source is None:
                continue
            document = PageDocument.from_dict(source)
            document.id = hit['_id']
            documents.append(document)
        return documents

    async def create_index(self, index_name: str, body: Optional[Dict[str, Any]] = None) -> bool:
        _require(index_name, "index_name")
        try:
            if await self.client.indices.exists(index=index_name):
                return False
            await self.client.indices.create(index=index_name, **(body or {}))
        except Exception as e:
            self.logger.error(f"Failed to create index {index_name}: {e}")
            raise IndexingError(f"Failed to create index {index_name}: {e}", index_name=index_name) from e
        self.logger.debug(f"Index {index_name} created")
        return True

    async def delete_index(self, index_name: str) -> bool:
        _require(index_name, "index_name")
        try:
            if not await self.client.indices.exists(index=index_name):
                return False
            await self.client.indices.delete(index=index_name)
        except Exception as e:
            self.logger.error(f"Failed to delete index {index_name}: {e}")
            raise IndexingError(f"Failed to delete index {index_name}: {e}", index_name=index_name) from e
        self.logger.debug(f"Index {index_name} deleted")
        return True

    async def create_alias(self, index_name: str, alias_name: str):
        try:
            await self.client.indices.put_alias(index=index_name, name=alias_name)
        except Exception as e:
            raise IndexingError(f"Failed to create alias {alias_name} for {index_name}: {e}",
                                index_name=index_name) from e
        self.logger.debug(f"Alias {alias_name} created")

    async def delete_alias(self, index_name: str, alias_name: str):
        try:
            await self.client.indices.delete_alias(index=index_name, name=alias_name)
        except NotFoundError:
            return
        except Exception as e:
            raise IndexingError(f"Failed to delete alias {alias_name} for {index_name}: {e}",
                                index_name=index_name) from e
        self.logger.debug(f"Alias {alias_name} deleted")

    async def create_template(self, template_name: str, index_patterns: List[str],
                              template: Optional[Dict[str, Any]] = None):
        try:
            if template:
                await self.client.indices.put_index_template(
                    name=template_name, index_patterns=index_patterns, template=template
                )
            else:
                await self.client.indices.put_index_template(
                    name=template_name, index_patterns=index_patterns
                )
        except Exception as e:
            raise IndexingError(f"Failed to create template {template_name}: {e}") from e
        self.logger.info(f"Template {template_name} created")

    async def delete_template(self, template_name: str):
        try:
            await self.client.indices.delete_index_template(name=template_name)
        except NotFoundError:
            return
        except Exception as e:
            raise IndexingError(f"Failed to delete template {template_name}: {e}") from e
        self.logger.debug(f"Template {template_name} deleted")

    async def close(self):
        await self.client.close()
        self.logger.info("Elasticsearch index store closed")


class FileIndexStore(IndexStore):
    """File-based index store for development and small-scale deployments."""

    def __init__(self, data_directory: str):
        self.data_directory = Path(data_directory)
        self.logger = logging.getLogger(__name__)
        self.stats = {
            'total_stored': 0,
            'storage_errors': 0
        }

    async def initialize(self):
        """Create data directory structure."""
        try:
            self.data_directory.mkdir(parents=True, exist_ok=True)
            (self.data_directory / 'indices').mkdir(exist_ok=True)
            self.logger.info(f"File index store initialized at {self.data_directory}")
        except Exception as e:
            raise IndexingError(f"Failed to initialize file index store: {e}") from e

    def _index_path(self, index_name: str) -> Path:
        return self.data_directory / 'indices' / index_name

    def _document_path(self, index_name: str, document_id: str) -> Path:
        return self._index_path(index_name) / f"{document_id}.json"

    def _load_json(self, name: str) -> Dict[str, Any]:
        path = self.data_directory / name
        if not path.exists():
            return {}
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _save_json(self, name: str, data: Dict[str, Any]):
        self.data_directory.mkdir(parents=True, exist_ok=True)
        with open(self.data_directory / name, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    async def index_document(self, index_name: str, document: PageDocument) -> str:
        _require(index_name, "index_name")
        if document is None:
            raise ValueError("document must not be None")

        document_id = document.id if document.id and document.id.strip() else uuid.uuid4().hex
        try:
            file_path = self._document_path(index_name, document_id)
            file_path.parent.mkdir(parents=True, exist_ok=True)

            data = document.to_dict()
            data.pop('id', None)
            data['storedAt'] = datetime.now(timezone.utc).isoformat()

            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        except Exception as e:
            self.stats['storage_errors'] += 1
            self.logger.error(f"Error storing {document.url} in {index_name}: {e}")
            raise IndexingError(f"Failed to index {document.url} into {index_name}: {e}",
                                index_name=index_name) from e

        self.stats['total_stored'] += 1
        self.logger.debug(f"Stored {document.url} to {file_path}")
        return document_id

    def _read_document(self, path: Path) -> PageDocument:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        data.pop('storedAt', None)
        document = PageDocument.from_dict(data)
        document.id = path.stem
        return document

    async def get_document(self, index_name: str, document_id: str) -> Optional[PageDocument]:
        _require(index_name, "index_name")
        _require(document_id, "document_id")
        file_path = self._document_path(index_name, document_id)
        if not file_path.exists():
            return None
        try:
            return self._read_document(file_path)
        except Exception as e:
            raise IndexingError(f"Failed to read document {document_id} from {index_name}: {e}",
                                index_name=index_name) from e

    async def search_all(self, index_name: str) -> List[PageDocument]:
        _require(index_name, "index_name")
        index_path = self._index_path(index_name)
        if not index_path.exists():
            return []
        try:
            paths = sorted(index_path.glob('*.json'))[:SEARCH_ALL_SIZE]
            return [self._read_document(path) for path in paths]
        except Exception as e:
            raise IndexingError(f"Failed to search {index_name}: {e}", index_name=index_name) from e

    async def create_index(self, index_name: str, body: Optional[Dict[str, Any]] = None) -> bool:
        _require(index_name, "index_name")
        index_path = self._index_path(index_name)
        if index_path.exists():
            return False
        index_path.mkdir(parents=True)
        if body:
            settings = self._load_json('settings.json')
            settings[index_name] = body
            self._save_json('settings.json', settings)
        self.logger.debug(f"Index {index_name} created")
        return True

    async def delete_index(self, index_name: str) -> bool:
        _require(index_name, "index_name")
        index_path = self._index_path(index_name)
        if not index_path.exists():
            return False
        for path in index_path.glob('*.json'):
            path.unlink()
        index_path.rmdir()
        self.logger.debug(f"Index {index_name} deleted")
        return True

    async def create_alias(self, index_name: str, alias_name: str):
        aliases = self._load_json('aliases.json')
        aliases[alias_name] = index_name
        self._save_json('aliases.json', aliases)

    async def delete_alias(self, index_name: str, alias_name: str):
        aliases = self._load_json('aliases.json')
        if aliases.get(alias_name) == index_name:
            del aliases[alias_name]
            self._save_json('aliases.json', aliases)

    async def create_template(self, template_name: str, index_patterns: List[str],
                              template: Optional[Dict[str, Any]] = None):
        templates = self._load_json('templates.json')
        templates[template_name] = {'index_patterns': list(index_patterns), 'template': template}
        self._save_json('templates.json', templates)

    async def delete_template(self, template_name: str):
        templates = self._load_json('templates.json')
        if templates.pop(template_name, None) is not None:
            self._save_json('templates.json', templates)

    def get_stats(self) -> Dict[str, int]:
        """Get storage statistics."""
        return self.stats.copy()


def create_index_store(config: ElasticsearchConfig) -> IndexStore:
    """File store when a data directory is configured, otherwise Elasticsearch."""
    if config.data_directory:
        return FileIndexStore(config.data_directory)
    return ElasticsearchIndexStore(config)
