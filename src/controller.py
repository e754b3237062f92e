"""
Initializer Controller - Reconciliation of pending initializers.

Each pass lists every registered InitializerController, and for each of them
every uninitialized object of the resources it declares. When the controller's
initializer is at the head of an object's pending queue, its init hook is
called and the queue is advanced. Failures are collected per object, per
resource and per controller; one failure never stops its siblings.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from accessor import ResourceAccessor
from config import ControllerConfig
from errors import (
    AggregateError,
    DecodeError,
    HookCallError,
    HookError,
    InitializerError,
    ListError,
    UpdateError,
)
from hooks import HookInvoker, HookResponse
from models import (
    INITIALIZER_CONTROLLER_API_VERSION,
    INITIALIZER_CONTROLLER_RESOURCE,
    InitializerController,
)
from pending import (
    apply_queue_update,
    get_pending,
    is_eligible,
    next_queue_state,
    set_result,
)

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _metadata(obj: Dict[str, Any]) -> Dict[str, Any]:
    metadata = obj.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def _describe(obj: Dict[str, Any]) -> str:
    metadata = _metadata(obj)
    namespace = metadata.get("namespace", "")
    return f"{obj.get('kind', '')} {namespace}/{metadata.get('name', '')}"


def _prepare_update(
    response: HookResponse, pending: List[Any]
) -> Dict[str, Any]:
    """Advance the queue on the object a hook returned and attach its result."""
    initialized = response.object
    if not isinstance(initialized.get("metadata"), dict):
        raise HookCallError("hook response object has no metadata")

    # The next state comes from the queue we read, not whatever the hook echoed.
    apply_queue_update(initialized, next_queue_state(pending))
    if response.result is not None:
        set_result(initialized, response.result)
    return initialized


@dataclass
class PassReport:
    """Summary of one reconciliation pass."""

    started_at: str = field(default_factory=_utcnow)
    finished_at: Optional[str] = None
    synced: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    initialized: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and not self.skipped

    def add_error(self, err: Exception) -> None:
        if isinstance(err, AggregateError):
            self.errors.extend(str(e) for e in err.flatten())
        else:
            self.errors.append(str(err))

    def finish(self) -> "PassReport":
        self.finished_at = _utcnow()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "success": self.success,
            "synced": list(self.synced),
            "skipped": list(self.skipped),
            "initialized": list(self.initialized),
            "errors": list(self.errors),
        }


async def initialize_resource(
    accessor: ResourceAccessor,
    hook_invoker: HookInvoker,
    ic: InitializerController,
    api_version: str,
    resource: str,
    report: Optional[PassReport] = None,
) -> Optional[AggregateError]:
    """
    Run one controller's initializer over every object of one resource.

    Args:
        accessor: Access to the API server.
        hook_invoker: Calls the controller's init hook.
        ic: The controller being synced.
        api_version: Group/version of the resource.
        resource: Plural resource name.
        report: Optional pass report to record initialized objects in.

    Returns:
        AggregateError with one entry per failed object, or None.

    Raises:
        ListError: If the objects cannot be listed.
    """
    try:
        objects = await accessor.list(
            api_version, resource, namespace="", include_uninitialized=True
        )
    except Exception as e:
        raise ListError(
            f"can't list uninitialized {resource}.{api_version} objects: {e}"
        ) from e

    errors: List[Exception] = []
    for uninitialized in objects:
        pending = get_pending(uninitialized)
        if not is_eligible(pending, ic.initializer_name):
            continue

        metadata = _metadata(uninitialized)
        kind = uninitialized.get("kind", "")
        namespace = metadata.get("namespace", "")
        name = metadata.get("name", "")

        try:
            response = await hook_invoker.invoke(ic, uninitialized)
            initialized = _prepare_update(response, pending)
        except Exception as e:
            logger.warning(
                f"InitializerController {ic.name}: init hook failed for "
                f"{kind} {namespace}/{name}: {e}"
            )
            errors.append(HookError(kind, namespace, name, e))
            continue

        logger.info(
            f"InitializerController {ic.name}: updating {_describe(initialized)}"
        )
        target_namespace = _metadata(initialized).get("namespace", "")
        try:
            await accessor.update(api_version, resource, target_namespace, initialized)
        except Exception as e:
            logger.warning(
                f"InitializerController {ic.name}: can't update "
                f"{_describe(initialized)}: {e}"
            )
            errors.append(UpdateError(kind, namespace, name, e))
            continue

        if report is not None:
            report.initialized.append(_describe(initialized))

    return AggregateError.from_errors(errors)


async def sync_initializer_controller(
    accessor: ResourceAccessor,
    hook_invoker: HookInvoker,
    ic: InitializerController,
    report: Optional[PassReport] = None,
) -> Optional[AggregateError]:
    """
    Sweep every resource an InitializerController declares.

    Returns:
        AggregateError of all failed resources, or None.
    """
    errors: List[Exception] = []
    for api_version, resource in ic.target_resources():
        try:
            err = await initialize_resource(
                accessor, hook_invoker, ic, api_version, resource, report=report
            )
        except InitializerError as e:
            errors.append(e)
            continue
        except Exception as e:
            logger.error(
                f"InitializerController {ic.name}: error syncing "
                f"{resource}.{api_version}: {e}",
                exc_info=True,
            )
            errors.append(e)
            continue
        if err:
            errors.append(err)
    return AggregateError.from_errors(errors)


async def sync_all_initializer_controllers(
    accessor: ResourceAccessor,
    hook_invoker: HookInvoker,
    report: Optional[PassReport] = None,
    api_version: str = INITIALIZER_CONTROLLER_API_VERSION,
    resource: str = INITIALIZER_CONTROLLER_RESOURCE,
) -> PassReport:
    """
    Run one reconciliation pass over all registered InitializerControllers.

    A controller that fails to decode is skipped; a controller whose sweep
    fails is logged. Neither stops the others.

    Returns:
        The PassReport for this pass.

    Raises:
        ListError: If the InitializerControllers cannot be listed.
    """
    if report is None:
        report = PassReport()

    try:
        records = await accessor.list(
            api_version, resource, namespace="", include_uninitialized=False
        )
    except Exception as e:
        raise ListError(f"can't list InitializerControllers: {e}") from e

    for raw in records:
        try:
            ic = InitializerController.decode(raw)
        except DecodeError as e:
            logger.error(str(e))
            report.skipped.append(e.name)
            report.add_error(e)
            continue

        report.synced.append(ic.name)
        try:
            err = await sync_initializer_controller(
                accessor, hook_invoker, ic, report=report
            )
        except Exception as e:
            logger.error(f"sync InitializerController {ic.name}: {e}", exc_info=True)
            report.add_error(e)
            continue
        if err:
            logger.error(f"sync InitializerController {ic.name}: {err}")
            report.add_error(err)

    return report.finish()


class Controller:
    """
    Runs reconciliation passes on a fixed interval.

    Passes never overlap: sync_once waits for a running pass to finish, and
    the status API answers a manual trigger during a pass with 409. The report of the most recent pass is kept for the status API.
    """

    def __init__(
        self,
        accessor: ResourceAccessor,
        hook_invoker: HookInvoker,
        config: Optional[ControllerConfig] = None,
    ):
        self.accessor = accessor
        self.hook_invoker = hook_invoker
        self.config = config or ControllerConfig()
        self.sync_interval = self.config.sync_interval
        self.running = False
        self.last_report: Optional[PassReport] = None
        self._lock = asyncio.Lock()
        self._shutdown_event = asyncio.Event()

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    async def sync_once(self) -> PassReport:
        """
        Run a single reconciliation pass.

        Raises:
            ListError: If the InitializerControllers cannot be listed. The
                failed pass is still recorded as the last report.
        """
        async with self._lock:
            report = PassReport()
            try:
                await sync_all_initializer_controllers(
                    self.accessor,
                    self.hook_invoker,
                    report=report,
                    api_version=self.config.config_api_version,
                    resource=self.config.config_resource,
                )
            except ListError as e:
                report.add_error(e)
                self.last_report = report.finish()
                raise

            self.last_report = report
            logger.info(
                f"Pass complete: {len(report.synced)} controllers synced, "
                f"{len(report.initialized)} objects initialized, "
                f"{len(report.errors)} errors"
            )
            return report

    async def start(self):
        """Start the reconciliation loop."""
        logger.info(
            f"Starting Initializer Controller (sync interval {self.sync_interval}s)"
        )
        self.running = True
        self._shutdown_event.clear()

        while self.running:
            try:
                await self.sync_once()
            except Exception as e:
                logger.error(f"Error in reconciliation pass: {e}", exc_info=True)

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(), timeout=self.sync_interval
                )
            except asyncio.TimeoutError:
                pass

    async def stop(self):
        """Stop the controller after the current pass."""
        logger.info("Stopping Initializer Controller")
        self.running = False
        self._shutdown_event.set()
