import asyncio
from contextlib import asynccontextmanager
from http import HTTPStatus
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from memo.helpers.cache import get_scheduler
from memo.helpers.collection import CollectionManager
from memo.helpers.config import CONFIG
from memo.helpers.labels import (
    WEEKDAY_LABELS,
    notification_type_options,
    schedule_type_options,
)
from memo.helpers.logging import logger
from memo.helpers.monitoring import start_as_current_span
from memo.helpers.notifications import NotificationScheduler
from memo.helpers.widget import load_widget_entry
from memo.models.collection import CollectionModel
from memo.models.error import ErrorInnerModel, ErrorModel
from memo.models.notification import ReconcileResultModel
from memo.models.readiness import ReadinessEnum, ReadinessModel
from memo.models.reminder import ReminderCreateModel, ReminderUpdateModel
from memo.models.reminder_list import (
    ListCreateModel,
    ListUpdateModel,
    ReminderListModel,
)
from memo.models.widget import WidgetEntryModel

# First log
logger.info(
    "memo v%s",
    CONFIG.version,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Foreground launch: load the collection, then bring the triggers of every list up to date.

    Background jobs are awaited at shutdown, for a limited time.
    """
    gateway = CONFIG.notification.gateway.instance
    store = CONFIG.store.instance

    async with get_scheduler() as scheduler:
        collection = CollectionManager(
            config=CONFIG.lists,
            legacy_store=CONFIG.store.legacy_instance,
            store=store,
        )
        notifications = NotificationScheduler(
            config=CONFIG.notification,
            gateway=gateway,
            scheduler=scheduler,
        )

        await collection.load()
        for reminder_list in collection.lists:
            await notifications.schedule_list(reminder_list)

        app.state.collection = collection
        app.state.gateway = gateway
        app.state.notifications = notifications
        app.state.store = store
        yield


# FastAPI
api = FastAPI(
    description="Reminder lists with scheduled local notifications, shared with a home-screen widget.",
    lifespan=lifespan,
    title="memo",
    version=CONFIG.version,
)


@api.get("/health/liveness")
@start_as_current_span("health_liveness_get")
async def health_liveness_get() -> None:
    """
    Check if the service is running.

    Returns a 200 OK if the service is technically running.
    """
    return


@api.get("/health/readiness")
@start_as_current_span("health_readiness_get")
async def health_readiness_get(request: Request) -> JSONResponse:
    """
    Check if the service is ready to serve requests.

    Services tested are: store, gateway.

    Returns a 200 OK if the service is ready, 503 Service Unavailable otherwise.
    """
    store_check, gateway_check = await asyncio.gather(
        request.app.state.store.readiness(),
        request.app.state.gateway.readiness(),
    )
    readiness = ReadinessModel.from_checks(
        gateway=gateway_check,
        store=store_check,
    )
    return JSONResponse(
        content=readiness.model_dump(mode="json"),
        status_code=HTTPStatus.OK
        if readiness.status == ReadinessEnum.OK
        else HTTPStatus.SERVICE_UNAVAILABLE,
    )


@api.get("/lists")
@start_as_current_span("lists_get")
async def lists_get(request: Request) -> CollectionModel:
    """
    Get every list and the selected one.
    """
    return _collection(request).snapshot()


@api.post(
    "/lists",
    status_code=HTTPStatus.CREATED,
)
@start_as_current_span("list_post")
async def list_post(
    request: Request,
    body: ListCreateModel,
) -> ReminderListModel:
    """
    Create a list and select it.

    Triggers are registered in the background if notifications are enabled.
    """
    new_list = await _collection(request).add_list(
        name=body.name,
        notification_settings=body.notification_settings,
    )
    if not new_list:
        raise HTTPException(
            detail="List name must not be empty",
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        )
    if new_list.notification_settings and new_list.notification_settings.is_enabled:
        await _notifications(request).schedule_list(new_list)
    return new_list


@api.put("/lists/{list_id}")
@start_as_current_span("list_put")
async def list_put(
    request: Request,
    list_id: UUID,
    body: ListUpdateModel,
) -> ReminderListModel:
    """
    Rename a list or change its notification settings.

    Triggers are always reconciled, disabling notifications cancels them.
    """
    _get_list_or_raise(request, list_id)
    updated = await _collection(request).rename_list(
        clear_notification_settings=body.clear_notification_settings,
        list_id=list_id,
        name=body.name,
        notification_settings=body.notification_settings,
    )
    if not updated:
        raise HTTPException(
            detail="List name must not be empty",
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        )
    await _notifications(request).schedule_list(updated)
    return updated


@api.delete("/lists/{list_id}")
@start_as_current_span("list_delete")
async def list_delete(
    request: Request,
    list_id: UUID,
) -> CollectionModel:
    """
    Delete a list and cancel its triggers.

    Deleting the default list while other lists exist, or an unknown list, is ignored. Returns the collection in both cases.
    """
    if await _collection(request).delete_list(list_id):
        await _notifications(request).forget_list(list_id)
    return _collection(request).snapshot()


@api.post("/lists/{list_id}/select")
@start_as_current_span("list_select_post")
async def list_select_post(
    request: Request,
    list_id: UUID,
) -> CollectionModel:
    if not await _collection(request).select_list(list_id):
        raise _list_not_found(list_id)
    return _collection(request).snapshot()


@api.post(
    "/lists/{list_id}/reminders",
    status_code=HTTPStatus.CREATED,
)
@start_as_current_span("reminder_post")
async def reminder_post(
    request: Request,
    list_id: UUID,
    body: ReminderCreateModel,
) -> ReminderListModel:
    """
    Append a reminder to a list.

    Returns the updated list.
    """
    _get_list_or_raise(request, list_id)
    updated = await _collection(request).add_reminder(
        due_date=body.due_date,
        list_id=list_id,
        title=body.title,
    )
    if not updated:
        raise HTTPException(
            detail="Reminder title must not be empty",
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        )
    await _notifications(request).schedule_list(updated)
    return updated


@api.patch("/lists/{list_id}/reminders/{reminder_id}")
@start_as_current_span("reminder_patch")
async def reminder_patch(
    request: Request,
    list_id: UUID,
    reminder_id: UUID,
    body: ReminderUpdateModel,
) -> ReminderListModel:
    _get_reminder_or_raise(request, list_id, reminder_id)
    updated = await _collection(request).update_reminder(
        clear_due_date=body.clear_due_date,
        due_date=body.due_date,
        is_completed=body.is_completed,
        list_id=list_id,
        reminder_id=reminder_id,
        title=body.title,
    )
    if not updated:
        raise HTTPException(
            detail="Reminder title must not be empty",
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        )
    await _notifications(request).schedule_list(updated)
    return updated


@api.post("/lists/{list_id}/reminders/{reminder_id}/toggle")
@start_as_current_span("reminder_toggle_post")
async def reminder_toggle_post(
    request: Request,
    list_id: UUID,
    reminder_id: UUID,
) -> ReminderListModel:
    _get_reminder_or_raise(request, list_id, reminder_id)
    updated = await _collection(request).toggle_reminder(
        list_id=list_id,
        reminder_id=reminder_id,
    )
    if not updated:
        raise _reminder_not_found(reminder_id)
    await _notifications(request).schedule_list(updated)
    return updated


@api.delete("/lists/{list_id}/reminders/{reminder_id}")
@start_as_current_span("reminder_delete")
async def reminder_delete(
    request: Request,
    list_id: UUID,
    reminder_id: UUID,
) -> ReminderListModel:
    _get_reminder_or_raise(request, list_id, reminder_id)
    updated = await _collection(request).delete_reminders(
        list_id=list_id,
        reminder_ids=[reminder_id],
    )
    if not updated:
        raise _reminder_not_found(reminder_id)
    await _notifications(request).schedule_list(updated)
    return updated


@api.post("/lists/{list_id}/notifications/reconcile")
@start_as_current_span("list_reconcile_post")
async def list_reconcile_post(
    request: Request,
    list_id: UUID,
) -> ReconcileResultModel:
    """
    Run a reconciliation pass now and wait for it.

    Returns the scheduled and skipped counts.
    """
    reminder_list = _get_list_or_raise(request, list_id)
    return await _notifications(request).reconcile_now(reminder_list)


@api.get("/notifications/options")
@start_as_current_span("notification_options_get")
async def notification_options_get() -> dict:
    """
    Display names of the notification settings, for the user interface.
    """
    return {
        "notification_types": [
            option.model_dump() for option in notification_type_options()
        ],
        "schedule_types": [option.model_dump() for option in schedule_type_options()],
        "weekdays": [
            {"value": value, "name": name} for value, name in WEEKDAY_LABELS.items()
        ],
    }


@api.get("/widget")
@start_as_current_span("widget_get")
async def widget_get(request: Request) -> WidgetEntryModel:
    """
    Content of the home-screen widget, read from the store only.
    """
    return await load_widget_entry(
        default_name=CONFIG.lists.default_name,
        display_count=CONFIG.widget.display_count,
        refresh_min=CONFIG.widget.refresh_min,
        store=request.app.state.store,
    )


@api.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request,  # noqa: ARG001
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions and return the error in a standard format.
    """
    return _standard_error(
        message=exc.detail,
        status_code=HTTPStatus(exc.status_code),
    )


@api.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,  # noqa: ARG001
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle validation exceptions and return the error in a standard format.
    """
    return _validation_error(exc)


def _collection(request: Request) -> CollectionManager:
    return request.app.state.collection


def _notifications(request: Request) -> NotificationScheduler:
    return request.app.state.notifications


def _get_list_or_raise(
    request: Request,
    list_id: UUID,
) -> ReminderListModel:
    reminder_list = _collection(request).get_list(list_id)
    if not reminder_list:
        raise _list_not_found(list_id)
    return reminder_list


def _get_reminder_or_raise(
    request: Request,
    list_id: UUID,
    reminder_id: UUID,
) -> None:
    reminder_list = _get_list_or_raise(request, list_id)
    if not reminder_list.reminder(reminder_id):
        raise _reminder_not_found(reminder_id)


def _list_not_found(list_id: UUID) -> HTTPException:
    return HTTPException(
        detail=f"List {list_id} not found",
        status_code=HTTPStatus.NOT_FOUND,
    )


def _reminder_not_found(reminder_id: UUID) -> HTTPException:
    return HTTPException(
        detail=f"Reminder {reminder_id} not found",
        status_code=HTTPStatus.NOT_FOUND,
    )


def _validation_error(e: ValidationError | RequestValidationError) -> JSONResponse:
    """
    Generate a standard validation error response.
    """
    messages = [
        str(x) for x in e.errors()
    ]  # Pydantic returns well formatted errors, use them
    return _standard_error(
        details=messages,
        message="Validation error",
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
    )


def _standard_error(
    message: str,
    status_code: HTTPStatus,
    details: list[str] | None = None,
) -> JSONResponse:
    """
    Generate a standard error response.
    """
    model = ErrorModel(
        error=ErrorInnerModel(
            details=details or [],
            message=message,
        )
    )
    return JSONResponse(
        content=model.model_dump(mode="json"),
        status_code=status_code,
    )
