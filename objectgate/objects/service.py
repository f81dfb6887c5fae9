"""
Object Storage Service
======================

Orchestrates path resolution, capability issuance, policy management and
download streaming on top of one shared backend client.

Design Principles:
------------------
1. **Explicit Wiring**: configuration, backend and membership registry are
   passed in; `from_config`/`from_env` build the default collaborators
2. **Uniform Not-Found**: every "does not exist" cause of an entity path
   is reported as NotFoundError
3. **One HEAD per Download**: metadata and policy come from the same HEAD
4. **Committed Means Committed**: once download headers are sent, failures
   abort the response and are logged; no second response is attempted

Example:
    >>> service = await ObjectStorageService.from_env(registry)
    >>> url = await service.issue_upload_capability()
    >>> ref = await service.resolve_entity("/objects/uploads/1f0c...")
    >>> await service.download(ref, response)
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Union
from urllib.parse import unquote, urlparse
from uuid import uuid4

from objectgate.acl.evaluator import AccessEvaluator, MembershipRegistry
from objectgate.acl.models import AclPolicy, Permission
from objectgate.acl.store import AclPolicyStore
from objectgate.core import constants as C
from objectgate.core.config import GatewayConfig
from objectgate.core.errors import BackendError, ConfigurationError, InvalidPathError, NotFoundError
from objectgate.core.types import HttpMethod, ObjectReference, SignedUrlRequest
from objectgate.objects.paths import PathResolver, join_path
from objectgate.objects.signing import SignedUrlIssuer
from objectgate.objects.sink import ResponseSink
from objectgate.objects.streams import ByteStream, adapt_body, release_source
from objectgate.observability.logging import log_context
from objectgate.reliability.retry import RetryPolicy
from objectgate.storage import create_backend
from objectgate.storage.config import S3Config
from objectgate.storage.protocols import ObjectBackend, ObjectHead

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = {"error": "Object not found"}
DOWNLOAD_FAILED_BODY = {"error": "Error downloading file"}


class ObjectStorageService:
    """Gateway entry point; one instance per process."""

    def __init__(
        self,
        config: GatewayConfig,
        backend: ObjectBackend,
        registry: Optional[MembershipRegistry] = None,
        *,
        endpoint_host: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._config = config
        self._backend = backend
        self._registry = registry if registry is not None else MembershipRegistry()
        self._endpoint_host = endpoint_host.lower() if endpoint_host else None
        self._resolver = PathResolver(config.default_bucket)
        self._issuer = SignedUrlIssuer(backend)
        self._store = AclPolicyStore(
            backend,
            retry_policy or RetryPolicy.for_conditional_writes(config.policy_write_retries),
        )
        self._evaluator = AccessEvaluator(self._registry)

    # -------------------------------------------------------------------------
    # CONSTRUCTION
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        backend: ObjectBackend,
        registry: Optional[MembershipRegistry] = None,
        *,
        endpoint_host: Optional[str] = None,
        strict: bool = False,
    ) -> ObjectStorageService:
        """
        Build the service and its default collaborators.

        Raises:
            ConfigurationError: `strict` and the configuration is invalid.
        """
        if strict:
            validation = config.validate()
            if validation.is_err():
                raise ConfigurationError(message=validation.error)
        return cls(config, backend, registry, endpoint_host=endpoint_host)

    @classmethod
    async def from_env(
        cls,
        registry: Optional[MembershipRegistry] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        strict: bool = True,
    ) -> ObjectStorageService:
        """Load configuration from the environment and connect an S3 backend."""
        loaded = GatewayConfig.from_env(environ)
        if loaded.is_err():
            raise ConfigurationError(message=loaded.error)
        config = loaded.unwrap()
        if strict:
            validation = config.validate()
            if validation.is_err():
                raise ConfigurationError(message=validation.error)

        try:
            s3_config = S3Config.from_env(environ=environ)
        except ValueError as e:
            raise ConfigurationError(message=f"Invalid backend configuration: {e}", cause=e) from e

        backend = await create_backend("s3", s3_config)
        return cls.from_config(config, backend, registry, endpoint_host=s3_config.endpoint_host)

    async def close(self) -> None:
        await self._backend.close()

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def backend(self) -> ObjectBackend:
        return self._backend

    @property
    def registry(self) -> MembershipRegistry:
        return self._registry

    @property
    def policy_store(self) -> AclPolicyStore:
        return self._store

    # -------------------------------------------------------------------------
    # ADDRESSING
    # -------------------------------------------------------------------------

    def resolve(self, path: str) -> ObjectReference:
        return self._resolver.resolve(path)

    def _private_root(self) -> str:
        root = self._config.require_private_object_dir()
        return root if root.endswith(C.PATH_SEPARATOR) else f"{root}{C.PATH_SEPARATOR}"

    async def resolve_entity(self, logical_path: str) -> ObjectReference:
        """
        Map an entity path (e.g. "/objects/uploads/<id>") to an existing
        object under the private root.

        Raises:
            NotFoundError: Wrong prefix, no entity id, malformed path,
                missing object, or a failed HEAD.
            ConfigurationError: PRIVATE_OBJECT_DIR is not set.
        """
        prefix = self._config.entity_prefix
        if not logical_path.startswith(prefix):
            raise NotFoundError(context={"path": logical_path[:200], "reason": "not an entity path"})

        entity_id = logical_path[len(prefix):]
        if not any(entity_id.split(C.PATH_SEPARATOR)):
            raise NotFoundError(context={"path": logical_path[:200], "reason": "missing entity id"})

        try:
            ref = self._resolver.resolve(f"{self._private_root()}{entity_id}")
        except InvalidPathError as e:
            raise NotFoundError(cause=e, context={"path": logical_path[:200]}) from e

        try:
            await self._backend.head_object(ref)
        except BackendError as e:
            logger.warning(f"Entity lookup for {ref} failed: {e}")
            raise NotFoundError.for_object(ref.bucket, ref.key, cause=e) from e
        return ref

    def _is_backend_host(self, host: Optional[str]) -> bool:
        if not host:
            return False
        if host.endswith(C.R2_HOST_SUFFIX):
            return True
        if self._endpoint_host and host == self._endpoint_host:
            return True
        public_base = self._config.public_base_url
        return bool(public_base) and host == (urlparse(public_base).hostname or "")

    def normalize_path(self, raw: str) -> str:
        """
        Rewrite a backend-native URL inside the private root as an entity
        path; return anything else unchanged (a backend URL outside the
        private root yields its URL path).
        """
        if not raw.startswith(("https://", "http://")):
            return raw

        parsed = urlparse(raw)
        if not self._is_backend_host(parsed.hostname):
            return raw

        url_path = unquote(parsed.path)
        private_root = self._private_root()
        if not url_path.startswith(private_root):
            return url_path
        return f"{self._config.entity_prefix}{url_path[len(private_root):]}"

    # -------------------------------------------------------------------------
    # CAPABILITIES
    # -------------------------------------------------------------------------

    async def issue_upload_capability(self) -> str:
        """PUT capability for a fresh object id under `{private root}/uploads/`."""
        object_id = str(uuid4())
        path = join_path(self._config.require_private_object_dir(), f"{C.UPLOADS_SUBDIR}/{object_id}")
        ref = self._resolver.resolve(path)
        return await self._issuer.sign(
            SignedUrlRequest.for_reference(ref, HttpMethod.PUT, self._config.upload_url_ttl_seconds)
        )

    async def issue_download_capability(
        self,
        ref: ObjectReference,
        ttl_seconds: Optional[int] = None,
    ) -> str:
        """GET capability for an existing object."""
        await self._backend.head_object(ref)
        ttl = ttl_seconds if ttl_seconds is not None else self._config.download_cache_ttl_seconds
        return await self._issuer.sign(SignedUrlRequest.for_reference(ref, HttpMethod.GET, ttl))

    # -------------------------------------------------------------------------
    # EXISTENCE AND LOOKUP
    # -------------------------------------------------------------------------

    async def object_exists(self, ref: ObjectReference) -> bool:
        try:
            await self._backend.head_object(ref)
        except NotFoundError:
            return False
        return True

    async def search_public_object(self, file_path: str) -> Optional[ObjectReference]:
        """
        First existing `{root}/{file_path}` over the public search roots,
        in configured order.

        Raises:
            ConfigurationError: No public search roots configured.
        """
        for root in self._config.require_public_search_paths():
            ref = self._resolver.resolve(join_path(root, file_path))
            if await self.object_exists(ref):
                return ref
        return None

    async def upload_file(
        self,
        file_path: str,
        data: bytes,
        content_type: str = C.DEFAULT_CONTENT_TYPE,
    ) -> ObjectReference:
        """Server-side upload under the private root."""
        ref = self._resolver.resolve(join_path(self._config.require_private_object_dir(), file_path))
        await self._backend.put_object(ref, data, content_type=content_type)
        return ref

    # -------------------------------------------------------------------------
    # POLICIES
    # -------------------------------------------------------------------------

    async def get_policy(self, ref: ObjectReference) -> Optional[AclPolicy]:
        return await self._store.get_policy(ref)

    async def set_policy(self, ref: ObjectReference, policy: AclPolicy) -> None:
        await self._store.set_policy(ref, policy)

    async def apply_policy(self, raw_path: str, policy: AclPolicy) -> str:
        """
        Attach `policy` to the entity `raw_path` names.

        Paths that do not normalize to an entity path are external objects:
        returned unchanged, nothing is written.
        """
        normalized = self.normalize_path(raw_path)
        if not normalized.startswith(self._config.entity_prefix):
            return normalized

        ref = await self.resolve_entity(normalized)
        await self._store.set_policy(ref, policy)
        return normalized

    async def can_access(
        self,
        user_id: Optional[str],
        ref: ObjectReference,
        requested: Permission = Permission.READ,
    ) -> bool:
        """Objects without a policy are denied."""
        policy = await self._store.get_policy(ref)
        if policy is None:
            return False
        return await self._evaluator.authorize(user_id, policy, requested)

    async def authorize(
        self,
        user_id: Optional[str],
        target: Union[AclPolicy, ObjectReference],
        requested: Permission = Permission.READ,
    ) -> bool:
        if isinstance(target, AclPolicy):
            return await self._evaluator.authorize(user_id, target, requested)
        if isinstance(target, ObjectReference):
            return await self.can_access(user_id, target, requested)
        raise TypeError(f"Cannot authorize against {type(target).__name__}")

    # -------------------------------------------------------------------------
    # DOWNLOAD
    # -------------------------------------------------------------------------

    async def _open(self, ref: ObjectReference) -> tuple[ObjectHead, Optional[AclPolicy], ByteStream]:
        head = await self._backend.head_object(ref)
        policy = self._store.policy_from_metadata(head.metadata)
        body = await self._backend.get_object(ref)
        try:
            stream = adapt_body(
                body,
                chunk_size=self._config.streaming.chunk_size_bytes,
                high_water=self._config.streaming.high_water_chunks,
            )
        except Exception:
            await release_source(body)
            raise
        return head, policy, stream

    def _download_headers(
        self,
        head: ObjectHead,
        policy: Optional[AclPolicy],
        cache_ttl_seconds: int,
    ) -> dict[str, str]:
        visibility = "public" if policy is not None and policy.is_public else "private"
        headers = {
            "Content-Type": head.content_type or C.DEFAULT_CONTENT_TYPE,
            "Cache-Control": f"{visibility}, max-age={cache_ttl_seconds}",
        }
        if head.size is not None:
            headers["Content-Length"] = str(head.size)
        return headers

    async def download(
        self,
        ref: ObjectReference,
        sink: ResponseSink,
        cache_ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        Stream `ref` into `sink`.

        Never raises for backend or stream failures: before headers they
        become a 404/500 JSON response, afterwards the sink is aborted.
        """
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else self._config.download_cache_ttl_seconds

        with log_context(bucket=ref.bucket, key=ref.key):
            try:
                head, policy, stream = await self._open(ref)
            except NotFoundError:
                logger.info(f"Download of {ref}: object not found")
                await sink.send_error(404, NOT_FOUND_BODY)
                return
            except Exception as e:
                logger.error(f"Error downloading {ref}: {e}", exc_info=True)
                await sink.send_error(500, DOWNLOAD_FAILED_BODY)
                return

            try:
                await sink.send_headers(200, self._download_headers(head, policy, ttl))
                await self._pump(ref, stream, sink)
            except Exception as e:
                logger.error(f"Download of {ref} failed after headers, aborting: {e}", exc_info=True)
                await self._fail_committed(sink)
            finally:
                await stream.aclose()

    async def _pump(self, ref: ObjectReference, stream: ByteStream, sink: ResponseSink) -> None:
        async for chunk in stream:
            if not await sink.write(chunk):
                logger.info(f"Download of {ref} cancelled: consumer closed the response")
                return
        await sink.end()

    async def _fail_committed(self, sink: ResponseSink) -> None:
        if sink.headers_sent:
            await sink.abort()
        else:
            await sink.send_error(500, DOWNLOAD_FAILED_BODY)


__all__ = ["ObjectStorageService", "NOT_FOUND_BODY", "DOWNLOAD_FAILED_BODY"]
