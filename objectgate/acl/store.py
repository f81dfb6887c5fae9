"""
Policy persistence in object metadata.

The policy is stored in one reserved custom-metadata field of the object
it governs. Writing it is a read-modify-write: HEAD, merge the field into
the existing metadata, then copy the object onto itself with metadata
REPLACE. The copy is conditional on the LastModified seen by the HEAD; a
lost race is retried from the HEAD with backoff.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from objectgate.acl.models import AclPolicy
from objectgate.core import constants as C
from objectgate.core.errors import BackendError, ConcurrentModificationError
from objectgate.core.types import ObjectReference
from objectgate.reliability.retry import RetryPolicy, retry_with_backoff
from objectgate.storage.protocols import ContentHeaders, CopyPreconditions, ObjectBackend

logger = logging.getLogger(__name__)


class AclPolicyStore:
    """Read and write AclPolicy values through the backend."""

    __slots__ = ("_backend", "_retry_policy", "_metadata_key")

    def __init__(
        self,
        backend: ObjectBackend,
        retry_policy: Optional[RetryPolicy] = None,
        metadata_key: str = C.ACL_POLICY_METADATA_KEY,
    ) -> None:
        self._backend = backend
        self._retry_policy = retry_policy or RetryPolicy.for_conditional_writes()
        self._metadata_key = metadata_key

    @property
    def metadata_key(self) -> str:
        return self._metadata_key

    def policy_from_metadata(self, custom_metadata: Mapping[str, str]) -> Optional[AclPolicy]:
        """
        Parse the policy field of `custom_metadata`.

        Returns None when the field is absent or malformed; never raises.
        """
        raw = custom_metadata.get(self._metadata_key)
        if not raw:
            return None
        try:
            return AclPolicy.from_json(raw)
        except (ValueError, KeyError, TypeError, RecursionError) as e:
            logger.debug(f"Ignoring unparseable ACL policy: {e}")
            return None

    async def get_policy(self, ref: ObjectReference) -> Optional[AclPolicy]:
        """
        Raises:
            NotFoundError: The object does not exist.
            BackendError: Any other backend failure.
        """
        head = await self._backend.head_object(ref)
        return self.policy_from_metadata(head.metadata)

    async def set_policy(self, ref: ObjectReference, policy: AclPolicy) -> None:
        """
        Attach `policy` to an existing object.

        Other custom metadata and the content-type, cache-control,
        content-encoding and content-disposition headers are preserved.

        Raises:
            NotFoundError: The object does not exist. Never creates one.
            ConcurrentModificationError: Retries exhausted.
            BackendError: Any other backend failure (not retried).
        """
        payload = policy.to_json()
        result = await retry_with_backoff(
            lambda: self._write_once(ref, payload),
            self._retry_policy,
        )
        if result.is_ok():
            return

        stats = result.error
        last_error = stats.last_error
        if last_error is None or isinstance(last_error, ConcurrentModificationError):
            logger.warning(
                f"Giving up on policy write for {ref} after {stats.total_attempts} attempts"
            )
            raise ConcurrentModificationError.retries_exhausted(stats.total_attempts, last_error)
        raise BackendError.operation_failed("set_policy", ref.bucket, ref.key, cause=last_error)

    async def _write_once(self, ref: ObjectReference, payload: str) -> None:
        head = await self._backend.head_object(ref)
        metadata = dict(head.metadata)
        metadata[self._metadata_key] = payload
        try:
            await self._backend.copy_object_metadata(
                ref,
                metadata=metadata,
                headers=ContentHeaders.from_head(head),
                preconditions=CopyPreconditions.from_head(head),
            )
        except ConcurrentModificationError:
            logger.info(f"Policy write for {ref} lost a race with another writer; retrying")
            raise


__all__ = ["AclPolicyStore"]
