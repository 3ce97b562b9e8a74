"""Role presets, per-user overrides and route-level permission checks.

A permission object maps a module to either a list of actions or, for the
structured modules, ``{"acoes": [...], "submodulos": [...]}``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VIEW, CREATE, EDIT, DELETE = "visualizar", "criar", "editar", "excluir"
ALL_ACTIONS = [VIEW, CREATE, EDIT, DELETE]

STRUCTURED_MODULES = ("ordemServico", "manutencoes")
ROLES = ("admin", "gestor", "almoxarifado", "oficina", "basico", "customizado")

ROLE_PRESETS: dict[str, dict] = {
    "admin": {
        "dashboard": [VIEW],
        "veiculos": ALL_ACTIONS,
        "produtos": ALL_ACTIONS,
        "ordemServico": {
            "acoes": ALL_ACTIONS,
            "submodulos": ["todos", "oficina", "almoxarifado", "compras"],
        },
        "manutencoes": {
            "acoes": ALL_ACTIONS,
            "submodulos": ["todos", "painel", "ordem-servico", "troca-oleo", "historicos", "planejamento"],
        },
        "relatorios": [VIEW, CREATE],
        "configuracoes": ALL_ACTIONS,
    },
    "gestor": {
        "dashboard": [VIEW],
        "veiculos": [VIEW, CREATE, EDIT],
        "produtos": [VIEW, CREATE, EDIT],
        "ordemServico": {
            "acoes": [VIEW, EDIT],
            "submodulos": ["todos", "oficina", "almoxarifado", "compras"],
        },
        "manutencoes": {
            "acoes": [VIEW, CREATE, EDIT],
            "submodulos": ["todos", "painel", "ordem-servico", "troca-oleo", "historicos", "planejamento"],
        },
        "relatorios": [VIEW, CREATE],
        "configuracoes": [VIEW],
    },
    "almoxarifado": {
        "dashboard": [VIEW],
        "veiculos": [VIEW],
        "produtos": ALL_ACTIONS,
        "ordemServico": {"acoes": [VIEW], "submodulos": ["almoxarifado"]},
        "manutencoes": {"acoes": [VIEW], "submodulos": ["painel", "ordem-servico", "planejamento"]},
        "relatorios": [VIEW],
        "configuracoes": [],
    },
    "oficina": {
        "dashboard": [VIEW],
        "veiculos": [VIEW],
        "produtos": [VIEW],
        "ordemServico": {"acoes": [VIEW, EDIT, CREATE], "submodulos": ["oficina", "finalizadas"]},
        "manutencoes": {
            "acoes": [VIEW, CREATE, EDIT],
            "submodulos": ["ordem-servico", "troca-oleo", "planejamento"],
        },
        "relatorios": [VIEW],
        "configuracoes": [],
    },
    "basico": {
        "dashboard": [VIEW],
        "veiculos": [VIEW],
        "produtos": [VIEW],
        "ordemServico": {"acoes": [VIEW], "submodulos": ["compras"]},
        "manutencoes": {"acoes": [VIEW], "submodulos": ["painel", "planejamento"]},
        "relatorios": [VIEW],
        "configuracoes": [],
    },
}


@dataclass(frozen=True)
class RoutePermission:
    module: str
    action: str = VIEW
    submodule: bool = False
    page: str | None = None


def _maintenance(page: str) -> RoutePermission:
    return RoutePermission("manutencoes", VIEW, submodule=True, page=page)


ROUTE_PERMISSIONS: dict[str, RoutePermission] = {
    "/dashboard": RoutePermission("dashboard"),
    "/dashboard/veiculos": RoutePermission("veiculos"),
    "/dashboard/produtos": RoutePermission("produtos"),
    "/dashboard/manutencoes/painel": _maintenance("painel"),
    "/dashboard/manutencoes/ordem-servico": _maintenance("ordem-servico"),
    "/dashboard/manutencoes/planejamento": _maintenance("planejamento"),
    "/dashboard/manutencoes/troca-oleo": _maintenance("troca-oleo"),
    "/dashboard/manutencoes/historicos": _maintenance("historicos"),
    "/dashboard/movimento/entradas": RoutePermission("produtos"),
    "/dashboard/movimento/saidas": RoutePermission("produtos"),
    "/dashboard/configuracoes": RoutePermission("configuracoes"),
}

# Workshop operators always reach these, whatever their overrides say.
_WORKSHOP_ROUTES = frozenset({
    "/dashboard",
    "/dashboard/manutencoes/ordem-servico",
    "/dashboard/manutencoes/troca-oleo",
    "/dashboard/veiculos",
})

WORK_ORDER_TABS = ("oficina", "almoxarifado", "compras")


def effective_permissions(role: str, custom: dict | None = None) -> dict:
    """Custom overrides win; a ``customizado`` user without overrides gets ``basico``."""
    if custom:
        return custom
    preset = ROLE_PRESETS.get(role)
    if preset is None:
        if role != "customizado":
            logger.warning("Unknown role %r; using basico permissions", role)
        preset = ROLE_PRESETS["basico"]
    return copy.deepcopy(preset)


def _match_route(path: str) -> tuple[str, RoutePermission] | None:
    path = path.rstrip("/") or "/"
    if path in ROUTE_PERMISSIONS:
        return path, ROUTE_PERMISSIONS[path]
    candidates = [r for r in ROUTE_PERMISSIONS if path.startswith(r + "/")]
    if not candidates:
        return None
    route = max(candidates, key=len)
    return route, ROUTE_PERMISSIONS[route]


def can(permissions: dict, module: str, action: str, page: str | None = None) -> bool:
    entry = permissions.get(module)
    if entry is None:
        return False
    if isinstance(entry, dict):
        if action not in entry.get("acoes", []):
            return False
        if page is None:
            return True
        submodules = entry.get("submodulos", [])
        return "todos" in submodules or page in submodules
    return action in entry


def check_route(role: str, permissions: dict | None, path: str) -> bool:
    """Whether a user with ``role`` and ``permissions`` may open ``path``."""
    if role == "admin":
        return True
    normalized = path.rstrip("/") or "/"
    if role == "oficina" and normalized in _WORKSHOP_ROUTES:
        return True

    matched = _match_route(normalized)
    if matched is None:
        logger.warning("No permission entry for route %s; denied", path)
        return False
    _, rule = matched

    perms = permissions if permissions else effective_permissions(role)
    if rule.module in STRUCTURED_MODULES:
        page = rule.page
        if rule.module == "ordemServico":
            page = normalized.rsplit("/", 1)[-1]
        return can(perms, rule.module, rule.action, page)
    return can(perms, rule.module, rule.action)


def allowed_work_order_tabs(permissions: dict) -> list[str]:
    """Department tabs shown on the work-order screen, ``finalizados`` last."""
    entry = permissions.get("ordemServico")
    if not isinstance(entry, dict) or VIEW not in entry.get("acoes", []):
        return []
    submodules = entry.get("submodulos", [])
    if "todos" in submodules:
        tabs = list(WORK_ORDER_TABS)
    else:
        tabs = [t for t in WORK_ORDER_TABS if t in submodules]
    return tabs + ["finalizados"]
