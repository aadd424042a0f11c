import yaml, json, importlib, logging, typing as t
from pathlib import Path

from .config import MAX_LIMIT, TABLES_FILE
from .records import Result

log = logging.getLogger("tablequery.registry")

DEFAULT_LIMIT = 100


class TableEntry(t.TypedDict, total=False):
    table: str
    model: str
    maxLimit: int


def _import_model(path: str) -> type:
    """Resolve 'package.module:ClassName' to a Result subclass."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise RuntimeError(f"Model path must look like 'package.module:Class': {path}")
    cls = getattr(importlib.import_module(module_name), attr)
    if not (isinstance(cls, type) and issubclass(cls, Result)):
        raise RuntimeError(f"Model {path} is not a Result subclass")
    return cls


class TableRegistry:
    """
    Entity name -> table mapping read from a YAML (or JSON) file:

        tables:
          users:
            table: app_users
            model: myapp.models:User
            maxLimit: 200
    """

    def __init__(self, path: t.Optional[Path] = None, *, max_limit: int = MAX_LIMIT):
        self.path = Path(path) if path is not None else TABLES_FILE
        self.max_limit = max_limit
        self.entries: dict[str, TableEntry] = {}
        self.loaded = False

    def load(self) -> None:
        if not self.path.exists():
            raise RuntimeError(f"Table mapping file not found: {self.path}")
        with self.path.open("r", encoding="utf-8") as f:
            if self.path.suffix.lower() in (".yaml", ".yml"):
                cfg = yaml.safe_load(f) or {}
            else:
                cfg = json.load(f)
        tables = cfg.get("tables", {}) or {}
        norm: dict[str, TableEntry] = {}
        for k, v in tables.items():
            if v is None:
                v = {}
            if not isinstance(v, dict):
                raise RuntimeError(f"Bad table mapping for {k}: {v}")
            item: TableEntry = {"table": str(v.get("table", k))}
            if "model" in v:
                item["model"] = str(v["model"])
            if "maxLimit" in v:
                item["maxLimit"] = int(v["maxLimit"])
            norm[k] = item
        self.entries = norm
        self.loaded = True
        log.info("Loaded %d table mapping(s) from %s", len(norm), self.path)

    def names(self) -> list[str]:
        return list(self.entries.keys())

    def ensure(self, name: str) -> TableEntry:
        if name not in self.entries:
            raise KeyError(f"Unknown table: {name}")
        return self.entries[name]

    def models(self) -> dict[str, type]:
        """Physical table name -> model class for every entry with a model."""
        return {
            e["table"]: _import_model(e["model"])
            for e in self.entries.values()
            if "model" in e
        }

    def bind(self, database) -> None:
        models = self.models()
        if models:
            database.register_models(models)

    def cap_limit(self, name: str, limit: t.Optional[int]) -> int:
        cap = int(self.ensure(name).get("maxLimit", self.max_limit))
        if not limit or limit <= 0:
            return min(DEFAULT_LIMIT, cap)
        return min(limit, cap)
