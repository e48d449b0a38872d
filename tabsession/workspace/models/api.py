"""API request / response schemas for the persistence service.

The request body of ``save`` is a plain ``TabSet``; the response wraps the
stored set with its owner and write time so clients can see which write won.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from tabsession.workspace.models.tab import TabSet


class TabSetResponse(TabSet):
    """Serialized tab set returned to clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    updated_at: datetime | None = None
