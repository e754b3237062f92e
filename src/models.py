"""
InitializerController models - Typed form of the registered controllers.

Raw InitializerController objects are read from the API server as plain
dicts and decoded here with pydantic.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import DecodeError

INITIALIZER_CONTROLLER_API_VERSION = "metacontroller.k8s.io/v1alpha1"
INITIALIZER_CONTROLLER_RESOURCE = "initializercontrollers"


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GroupVersionResources(_APIModel):
    """Resources of one API group/version that an initializer handles."""

    api_version: str = Field(..., alias="apiVersion", min_length=1)
    resources: List[str] = Field(default_factory=list)


class ServiceReference(_APIModel):
    """In-cluster Service that serves the init hook."""

    name: str = Field(..., min_length=1)
    namespace: str = Field(..., min_length=1)
    port: Optional[int] = None


class ClientConfig(_APIModel):
    """Where the init hook lives: a Service or an explicit base URL."""

    service: Optional[ServiceReference] = None
    url: Optional[str] = None


class HookTarget(_APIModel):
    path: str = ""


class InitializerControllerHooks(_APIModel):
    init: HookTarget = Field(default_factory=HookTarget)


class InitializerControllerSpec(_APIModel):
    initializer_name: str = Field(..., alias="initializerName", min_length=1)
    uninitialized_resources: List[GroupVersionResources] = Field(
        default_factory=list, alias="uninitializedResources"
    )
    client_config: ClientConfig = Field(..., alias="clientConfig")
    hooks: InitializerControllerHooks = Field(
        default_factory=InitializerControllerHooks
    )

    @field_validator("client_config")
    @classmethod
    def validate_client_config(cls, v: ClientConfig) -> ClientConfig:
        if v.service is None and not v.url:
            raise ValueError("clientConfig must set either service or url")
        return v


class ObjectMeta(_APIModel):
    name: str = Field(..., min_length=1)
    namespace: str = ""


class InitializerController(_APIModel):
    """One registered initializing agent."""

    metadata: ObjectMeta
    spec: InitializerControllerSpec

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def initializer_name(self) -> str:
        return self.spec.initializer_name

    def target_resources(self) -> List[Tuple[str, str]]:
        """
        Return the (apiVersion, resource) pairs to sweep.

        Pairs keep their declaration order; a pair declared twice is only
        returned once.
        """
        seen = set()
        targets: List[Tuple[str, str]] = []
        for group in self.spec.uninitialized_resources:
            for resource in group.resources:
                key = (group.api_version, resource)
                if key not in seen:
                    seen.add(key)
                    targets.append(key)
        return targets

    def hook_url(self) -> str:
        """Build the URL of the init hook."""
        client_config = self.spec.client_config
        path = self.spec.hooks.init.path.lstrip("/")
        if client_config.url:
            return f"{client_config.url.rstrip('/')}/{path}"

        service = client_config.service
        host = f"{service.name}.{service.namespace}"
        if service.port:
            host = f"{host}:{service.port}"
        return f"http://{host}/{path}"

    @classmethod
    def decode(cls, raw: Any) -> "InitializerController":
        """
        Decode a raw InitializerController object.

        Raises:
            DecodeError: If the record is not a valid InitializerController.
        """
        if not isinstance(raw, dict):
            raise DecodeError(
                "<unknown>", f"expected an object, got {type(raw).__name__}"
            )

        name = _record_name(raw)
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '(root)'}: {err['msg']}"
                for err in e.errors()
            )
            raise DecodeError(name, errors) from e


def _record_name(raw: Dict[str, Any]) -> str:
    metadata = raw.get("metadata")
    if isinstance(metadata, dict) and isinstance(metadata.get("name"), str):
        return metadata["name"]
    return "<unknown>"
