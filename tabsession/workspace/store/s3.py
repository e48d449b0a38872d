"""S3 tab-set store.

One JSON object per user::

    s3://{bucket}/{prefix}/tab_sets/{user_id}.json

or ``tab_sets/{user_id}.json`` without a prefix.  boto3 is blocking, so every
call is pushed to the thread pool with ``anyio.to_thread.run_sync``.
"""

from __future__ import annotations

from functools import partial
from typing import Any

import boto3
from anyio import to_thread
from botocore.config import Config
from botocore.exceptions import ClientError

from tabsession.workspace.models.tab import TabSet

# Error codes S3 and S3-compatible services use for a missing object.
_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3TabSetStore:
    """S3 implementation of the TabSetStore protocol.

    Works against AWS and S3-compatible services; MinIO needs
    ``path_style=True``.
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        prefix: str | None = None,
        region: str | None = None,
        path_style: bool = False,
    ) -> None:
        self._bucket = bucket
        self._root = f"{prefix}/tab_sets" if prefix else "tab_sets"
        self._client: Any = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(
                # Some S3-compatible services reject the newer default checksums.
                request_checksum_calculation="when_required",
                response_checksum_validation="when_required",
                s3={"addressing_style": "path" if path_style else "auto"},
                retries={"mode": "standard", "max_attempts": 3},
            ),
        )

    def key_for(self, user_id: str) -> str:
        return f"{self._root}/{user_id}.json"

    async def save(self, user_id: str, tab_set: TabSet) -> None:
        put = partial(
            self._client.put_object,
            Bucket=self._bucket,
            Key=self.key_for(user_id),
            Body=tab_set.to_json().encode("utf-8"),
            ContentType="application/json",
        )
        await to_thread.run_sync(put)

    async def load(self, user_id: str) -> TabSet | None:
        raw = await to_thread.run_sync(self._fetch, self.key_for(user_id))
        return None if raw is None else TabSet.model_validate_json(raw)

    async def delete(self, user_id: str) -> None:
        # DeleteObject succeeds for missing keys.
        await to_thread.run_sync(
            partial(self._client.delete_object, Bucket=self._bucket, Key=self.key_for(user_id))
        )

    def _fetch(self, key: str) -> bytes | None:
        """GET the object and drain its body on the same worker thread."""
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise
        return resp["Body"].read()
