"""
Permission declaration scanner.

Every protected route declares its requirement explicitly through a
`require_access(...)` dependency.  The app keeps the list of its
controller routers; `declarations_from_routers` turns their routes
into a flat list of declarations (one per route, in registration
order) and `PermissionScanner` reduces that to `slug → first location
that declared it`.

Because router order and route order are fixed, repeated scans of an
unchanged app attribute every slug to the same location.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from fastapi import APIRouter
from fastapi.dependencies.models import Dependant
from fastapi.routing import APIRoute

from app.rbac.decision import AccessRequirement
from app.rbac.dependencies import require_access
from app.rbac.matcher import is_valid_permission_slug

logger = logging.getLogger("rbac.scanner")


@dataclass(frozen=True)
class OperationLocation:
    controller: str
    method: str

    def __str__(self) -> str:
        return f"{self.controller}.{self.method}"


@dataclass(frozen=True)
class OperationDeclaration:
    location: OperationLocation
    requirement: AccessRequirement


def _iter_requirements(dependant: Dependant) -> Iterator[AccessRequirement]:
    """Depth-first over the dependency tree, in declaration order."""
    for sub in dependant.dependencies:
        if isinstance(sub.call, require_access):
            yield sub.call.requirement
        yield from _iter_requirements(sub)


def _location_for(route: APIRoute) -> OperationLocation:
    module = getattr(route.endpoint, "__module__", "") or ""
    return OperationLocation(
        controller=module.rsplit(".", 1)[-1] or "app",
        method=getattr(route.endpoint, "__name__", route.name),
    )


def declarations_from_routers(routers: Iterable[APIRouter]) -> list[OperationDeclaration]:
    """Build the declaration table from the controllers' routers.

    Routers are read directly rather than through `app.routes`: a
    router's own route list is flat and ordered, whatever the app does
    with it on `include_router`.  Non-API routes (websockets, mounts)
    and routes without a `require_access` dependency are skipped.
    """
    declarations: list[OperationDeclaration] = []
    seen: set[int] = set()

    for router in routers:
        for route in router.routes:
            if not isinstance(route, APIRoute) or id(route) in seen:
                continue
            seen.add(id(route))

            permissions: list[str] = []
            roles: list[str] = []
            for requirement in _iter_requirements(route.dependant):
                permissions.extend(requirement.permissions)
                roles.extend(requirement.roles)

            if not permissions and not roles:
                continue

            declarations.append(
                OperationDeclaration(
                    location=_location_for(route),
                    requirement=AccessRequirement(
                        permissions=tuple(dict.fromkeys(permissions)),
                        roles=tuple(dict.fromkeys(roles)),
                    ),
                )
            )
    return declarations


class PermissionScanner:
    def __init__(self, declarations: Sequence[OperationDeclaration]):
        self.declarations = declarations

    def scan(self) -> dict[str, OperationLocation]:
        found: dict[str, OperationLocation] = {}

        for declaration in self.declarations:
            for slug in declaration.requirement.permissions:
                if not is_valid_permission_slug(slug):
                    logger.debug("Skipping malformed permission %r at %s", slug, declaration.location)
                    continue
                found.setdefault(slug, declaration.location)

        if found:
            logger.info("Permissions declared by routes: %s", ", ".join(found))
        else:
            logger.warning("No permissions declared by any route.")
        return found
