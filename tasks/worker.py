"""Celery application factory."""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any

import structlog
from celery import Celery, signals
from kombu import Queue

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[1]

APPROVALS_QUEUE = "approvals"

settings = get_settings()


def _resolve_ca_cert_path(path: str | None) -> str | None:
    """Resolve the configured CA certificate path to an absolute path.

    redis-py needs an absolute path for ``ssl_ca_certs``; project-relative
    values such as ``certs/redis_ca.pem`` are anchored at the project root.
    A missing file is logged and Python's default trust store is used.
    """

    if not path:
        return None

    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate

    if candidate.is_file():
        return str(candidate)

    LOGGER.warning(
        "redis_ca_certificate_missing",
        configured_path=path,
        resolved_path=str(candidate),
    )
    return None


def _build_ssl_options() -> dict[str, Any]:
    """Return SSL options for Redis connections."""

    options: dict[str, Any] = {"ssl_cert_reqs": ssl.CERT_REQUIRED}
    resolved_cert = _resolve_ca_cert_path(settings.redis_ca_cert_path)
    if resolved_cert:
        options["ssl_ca_certs"] = resolved_cert
    return options


def _verify_celery_connectivity() -> None:
    """Fail fast when the broker is unreachable instead of idling with queued work."""

    try:
        with celery.connection_for_read() as connection:
            connection.ensure_connection(max_retries=1)
    except Exception as exc:  # pragma: no cover - requires broker connectivity
        LOGGER.error(
            "celery_broker_unavailable",
            broker=settings.broker_url,
            error=str(exc),
        )
        raise


celery = Celery(
    "siteflow",
    broker=settings.broker_url,
    backend=settings.result_backend,
)
celery.conf.update(include=["tasks.approval_tasks"])

ssl_options = _build_ssl_options()

celery_conf: dict[str, object] = {
    "task_default_queue": APPROVALS_QUEUE,
    "task_queues": (Queue(APPROVALS_QUEUE),),
    "task_routes": {"tasks.bulk_transition": {"queue": APPROVALS_QUEUE}},
    "task_serializer": "json",
    "accept_content": ["json"],
    "result_serializer": "json",
    "worker_prefetch_multiplier": 1,
    "task_acks_late": True,
    "broker_transport_options": {
        "global_keyprefix": "siteflow-broker:",
    },
    "result_backend_transport_options": {
        "global_keyprefix": "siteflow-result:",
    },
    "broker_connection_retry_on_startup": True,
}

if settings.broker_url.startswith("rediss://"):
    celery_conf["broker_use_ssl"] = ssl_options.copy()

if settings.result_backend.startswith("rediss://"):
    celery_conf["redis_backend_use_ssl"] = ssl_options.copy()

celery.conf.update(**celery_conf)

LOGGER.info(
    "celery_bootstrap_ready",
    broker=settings.broker_url,
    backend=settings.result_backend,
)


@signals.worker_ready.connect
def _log_worker_configuration(sender: Any | None = None, **_: Any) -> None:
    """Emit structured worker configuration details after startup."""

    app = sender.app if sender is not None else celery
    _verify_celery_connectivity()
    registered_tasks = sorted(
        task_name for task_name in app.tasks.keys() if task_name.startswith("tasks.")
    )
    LOGGER.info(
        "celery_worker_configuration",
        default_queue=app.conf.task_default_queue,
        registered_tasks=registered_tasks,
    )


@signals.task_postrun.connect
def _log_task_postrun(
    sender: Any | None = None,
    task_id: str | None = None,
    task: Any | None = None,
    retval: Any | None = None,
    state: str | None = None,
    **_: Any,
) -> None:
    """Emit completion information after a task finishes."""

    task_name = getattr(task, "name", None) or ""
    if task_name and not task_name.startswith("tasks."):
        return
    payload: dict[str, Any] = {"task_id": task_id, "task_name": task_name or None, "state": state}
    if state == "SUCCESS" and isinstance(retval, dict):
        payload["success_count"] = retval.get("success_count")
        payload["failure_count"] = retval.get("failure_count")
    LOGGER.info("celery_task_postrun", **payload)


__all__ = ["APPROVALS_QUEUE", "celery"]
