"""Saved-route persistence.

Routes are opaque records keyed by a random string id. ``JsonRouteStore``
keeps one JSON document per route under a directory and writes atomically
(temp file + replace) so a crash never leaves a half-written record.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .config import ROUTE_STORE_DIR
from .errors import PersistenceError
from .models import SavedRoute
from .utils import iso_from_ms, ms_from_iso, new_id, now_ms

_LOGGER = logging.getLogger(__name__)


def new_route_id() -> str:
    return new_id()


def _created_key(route: SavedRoute) -> int:
    try:
        return ms_from_iso(route.created_at)
    except ValueError:
        return route.start_time


class RouteStore(Protocol):
    def save(self, route: SavedRoute) -> str: ...

    def get_all(self) -> List[SavedRoute]: ...

    def get(self, route_id: str) -> Optional[SavedRoute]: ...

    def delete(self, route_id: str) -> None: ...

    def touch(self, route_id: str) -> None: ...


class InMemoryRouteStore:
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self._routes: Dict[str, SavedRoute] = {}
        self._lock = threading.Lock()

    def save(self, route: SavedRoute) -> str:
        if not route.id:
            route.id = new_route_id()
        with self._lock:
            self._routes[route.id] = SavedRoute.from_dict(route.to_dict())
        return route.id

    def get_all(self) -> List[SavedRoute]:
        with self._lock:
            routes = [SavedRoute.from_dict(r.to_dict()) for r in self._routes.values()]
        return sorted(routes, key=_created_key, reverse=True)

    def get(self, route_id: str) -> Optional[SavedRoute]:
        with self._lock:
            route = self._routes.get(route_id)
        return SavedRoute.from_dict(route.to_dict()) if route else None

    def delete(self, route_id: str) -> None:
        with self._lock:
            self._routes.pop(route_id, None)

    def touch(self, route_id: str) -> None:
        with self._lock:
            route = self._routes.get(route_id)
            if route is not None:
                route.last_used = iso_from_ms(now_ms())


class JsonRouteStore:
    """Directory of ``<id>.json`` route documents."""

    def __init__(self, base_dir: str | Path = ROUTE_STORE_DIR) -> None:
        base = Path(base_dir)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _file_path(self, route_id: str) -> Path:
        if not route_id or "/" in route_id or "\\" in route_id or route_id.startswith("."):
            raise PersistenceError(f"Invalid route id: {route_id!r}")
        return self._base_dir / f"{route_id}.json"

    def _write_file(self, path: Path, payload: Dict[str, object]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=True, indent=2)
        temp_path.replace(path)

    def _read_file(self, path: Path) -> Optional[SavedRoute]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed reading route file {path}: {exc}") from exc
        try:
            return SavedRoute.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Malformed route file {path}: {exc}") from exc

    def save(self, route: SavedRoute) -> str:
        if not route.id:
            route.id = new_route_id()
        path = self._file_path(route.id)
        with self._lock:
            try:
                self._write_file(path, route.to_dict())
            except OSError as exc:
                raise PersistenceError(f"Failed to save route {route.id}: {exc}") from exc
        _LOGGER.info("Route saved id=%s path=%s", route.id, path)
        return route.id

    def get_all(self) -> List[SavedRoute]:
        if not self._base_dir.is_dir():
            return []
        routes: List[SavedRoute] = []
        with self._lock:
            for path in self._base_dir.glob("*.json"):
                try:
                    route = self._read_file(path)
                except PersistenceError as exc:
                    _LOGGER.warning("Skipping unreadable route file: %s", exc)
                    continue
                if route is not None:
                    routes.append(route)
        return sorted(routes, key=_created_key, reverse=True)

    def get(self, route_id: str) -> Optional[SavedRoute]:
        path = self._file_path(route_id)
        with self._lock:
            return self._read_file(path)

    def delete(self, route_id: str) -> None:
        path = self._file_path(route_id)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise PersistenceError(f"Failed to delete route {route_id}: {exc}") from exc
        _LOGGER.info("Route deleted id=%s", route_id)

    def touch(self, route_id: str) -> None:
        """Update ``last_used`` of an existing route; missing ids are ignored."""

        route = self.get(route_id)
        if route is None:
            return
        route.last_used = iso_from_ms(now_ms())
        self.save(route)
