"""Tab and tab-set data models.

``WorkspaceTab`` is the in-memory record owned by the registry.
``PersistedTab`` / ``TabSet`` are the durable shapes exchanged with the
persistence API.  The wire format uses camelCase keys (``moduleCode``,
``activeTabId``) while Python attributes stay snake_case.
"""

from __future__ import annotations

import hashlib
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DASHBOARD_TAB_ID = "dashboard"


class PersistedTab(BaseModel):
    """Durable subset of a tab.  Never carries dirty state or UI state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    route: str
    title: str
    subtitle: str | None = None
    module_code: str
    context_id: str | None = None
    context_type: str | None = None
    is_pinned: bool = False
    icon_name: str | None = None


class WorkspaceTab(PersistedTab):
    """One open work item, as held by the registry."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    has_unsaved_changes: bool = False
    last_active_at: float = 0.0

    def to_persisted(self) -> PersistedTab:
        return PersistedTab.model_validate(self.model_dump(include=set(PersistedTab.model_fields)))

    @classmethod
    def from_persisted(cls, tab: PersistedTab) -> WorkspaceTab:
        return cls.model_validate(tab.model_dump())

    def matches(self, other: WorkspaceTab) -> bool:
        """Whether *other* describes the same work item (duplicate prevention)."""
        if self.id == other.id:
            return True
        if self.context_id is not None and self.context_type is not None:
            if (self.context_type, self.context_id) == (other.context_type, other.context_id):
                return True
        return self.route == other.route


class TabSet(BaseModel):
    """The persisted unit: ordered tabs plus the active tab id."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tabs: list[PersistedTab] = Field(default_factory=list)
    active_tab_id: str | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def content_hash(self) -> str:
        """Stable digest of the serialized set, used to gate redundant writes."""
        return hashlib.sha256(self.to_json().encode("utf-8")).hexdigest()


def dashboard_tab(route: str = "/dashboard") -> WorkspaceTab:
    """Build the reserved, never-closable home tab."""
    return WorkspaceTab(
        id=DASHBOARD_TAB_ID,
        route=route,
        title="Dashboard",
        module_code="dashboard",
        icon_name="layout-dashboard",
    )
