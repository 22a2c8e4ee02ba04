"""Request and approval workflow engine.

Owns the lifecycle of change requests. Members assemble new, edit and
remove proposals; once the chat layer has posted a proposal's message,
the request is filed against that message id. Moderators then approve,
amend, dismiss or undo it.

Every moderator operation checks permissions before doing anything else,
so a refused call leaves no trace. Location Store writes happen before the
request status changes: if the status update fails afterwards, the
mismatch is reported as PartialFailureError and not compensated.

All methods are synchronous. The chat layer runs them off its event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from ..domain.addressing import format_selection
from ..domain.coordinates import (
    check_index,
    coordinates_from_json,
    coordinates_to_json,
    format_coordinates,
    merge_coordinates,
    parse_coordinates,
    parse_point,
    point_at,
    remove_point,
    replace_point,
)
from ..domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    PartialFailureError,
    PermissionDeniedError,
    SnapshotError,
    ValidationError,
)
from ..domain.models import (
    WILDCARD,
    Actor,
    ChangeRequest,
    CoordinateIndex,
    EditSession,
    FieldEdit,
    Location,
    NewRequestDraft,
    RequestDraft,
    RequestKind,
    RequestStatus,
    ResolvedCandidate,
    utcnow,
)
from ..domain.snapshots import (
    EDITABLE_FIELDS,
    diff_snapshots,
    dump_snapshot,
    field_to_text,
    location_to_snapshot,
    parse_snapshot,
    snapshot_to_location,
    text_to_field,
)
from ..ports.cache import CachePort
from ..ports.nlp import TypeClassifierPort
from ..ports.notify import ChangeNotifierPort
from ..ports.sessions import EditSessionStorePort
from ..ports.stores import LocationStorePort, RequestStorePort
from .name_resolver import NameResolver
from .session_bootstrap import reconstruct_edits

MAX_NAME_LENGTH = 100
MAX_POINT_CHOICES = 25
REMOVE_ALL = "all"


def moderation_target(message_id: str) -> str:
    """Edit session target id used while a moderator amends a request."""
    return f"request:{message_id}"


def _draft_key(user_id: str) -> str:
    return f"new:{user_id}"


def _require_text(value: Optional[str], field_name: str, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message, field=field_name)
    return text


@dataclass(frozen=True)
class EditTarget:
    """The location (and point) a member chose to edit or remove."""

    location: Location
    index: CoordinateIndex = None

    @property
    def needs_point_choice(self) -> bool:
        return self.location.is_multi_point and self.index is None


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of approving a request, for the moderator's confirmation."""

    request: ChangeRequest
    location_id: Optional[str] = None
    changed_fields: Tuple[str, ...] = ()
    created: bool = False
    merged: bool = False
    deleted: bool = False
    no_changes: bool = False

    @property
    def summary(self) -> str:
        if self.no_changes:
            return "Approved with no changes: the entry already matched."
        if self.created:
            return "Approved: new entry added to the map."
        if self.merged:
            return "Approved: coordinates merged into the existing entry."
        if self.deleted:
            return "Approved: entry removed from the map."
        if self.request.kind is RequestKind.REMOVE:
            return "Approved: point removed from the entry."
        return "Approved: updated " + ", ".join(self.changed_fields) + "."


@dataclass
class WorkflowEngine:
    """Coordinates submissions and moderation over the stores.

    Attributes:
        locations: The shared map dataset
        requests: Change request persistence
        sessions: In-progress field edits
        resolver: Name resolution (its name cache is refreshed after writes)
        classifier: Location type inference for new entries
        notifier: Downstream change notification
        drafts: Short-lived cache for new-request drafts
        categories: Allowed location types
        fallback_category: Type used when inference fails
    """

    locations: LocationStorePort
    requests: RequestStorePort
    sessions: EditSessionStorePort
    resolver: NameResolver
    classifier: TypeClassifierPort
    notifier: ChangeNotifierPort
    drafts: CachePort[Any]
    categories: Sequence[str] = ()
    fallback_category: str = "user_submitted"

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    # ===================== Helpers =====================

    def _require_admin(self, actor: Actor, action: str) -> None:
        if not actor.is_admin:
            self._logger.warning(
                "Permission denied",
                extra={"actor_id": actor.user_id, "action": action},
            )
            raise PermissionDeniedError(
                "Only moderators can do that.", actor_id=actor.user_id, action=action
            )

    def ensure_moderator(self, actor: Actor, action: str) -> None:
        """Raise PermissionDeniedError unless ``actor`` may moderate."""
        self._require_admin(actor, action)

    def get_location(self, location_id: str) -> Location:
        return self._get_location(location_id)

    def _get_location(self, location_id: str) -> Location:
        location = self.locations.get(location_id)
        if location is None:
            raise NotFoundError(
                "That location no longer exists.", entity="location", key=location_id
            )
        return location

    def _find_request(self, request_or_message_id: str) -> ChangeRequest:
        request = self.requests.get(request_or_message_id) or self.requests.get_by_message_id(
            request_or_message_id
        )
        if request is None:
            raise NotFoundError(
                f"No request with id {request_or_message_id}.",
                entity="request",
                key=request_or_message_id,
            )
        return request

    def _load_pending(
        self, message_id: str, target: RequestStatus = RequestStatus.IMPLEMENTED
    ) -> ChangeRequest:
        request = self.requests.get_by_message_id(message_id)
        if request is None:
            raise NotFoundError(
                "This request is no longer on file.", entity="request", key=message_id
            )
        if request.status is not RequestStatus.PENDING:
            raise InvalidTransitionError(
                f"This request was already {request.status.value}.",
                current=request.status.value,
                target=target.value,
            )
        return request

    def _after_location_change(self, reason: str) -> None:
        """Drop the cached names and tell dataset consumers. Never raises."""
        try:
            self.resolver.invalidate_names()
            self.notifier.notify(reason)
        except Exception as e:
            self._logger.warning(
                "Change notification failed",
                extra={"reason": reason, "error": str(e)},
            )

    def _finish(
        self,
        request: ChangeRequest,
        status: RequestStatus,
        actor: Actor,
        location_id: Optional[str],
        current_data: Optional[str] = None,
        new_data: Optional[str] = None,
    ) -> ChangeRequest:
        """Record the outcome after the Location Store was already written."""
        try:
            if current_data is not None or new_data is not None:
                self.requests.update_snapshots(
                    request.id, current_data=current_data, new_data=new_data
                )
            return self.requests.update_status(
                request.id, status, approver_id=actor.user_id, approved_at=utcnow()
            )
        except Exception as e:
            self._logger.critical(
                "Location store changed but request status was not recorded",
                extra={
                    "request_id": request.id,
                    "location_id": location_id,
                    "status": status.value,
                    "error": str(e),
                },
            )
            raise PartialFailureError(
                "The map was updated but the request could not be marked "
                f"{status.value}. Please check request {request.id} by hand.",
                cause=e,
                request_id=request.id,
                location_id=location_id,
            )

    # ===================== Submission: new entries =====================

    def start_new_request(self, actor: Actor, name: str) -> NewRequestDraft:
        name = _require_text(name, "name", "A name is required.")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Names are limited to {MAX_NAME_LENGTH} characters.", field="name"
            )
        draft = NewRequestDraft(user_id=actor.user_id, name=name)
        self.drafts.set(_draft_key(actor.user_id), draft)
        return draft

    def _get_draft(self, actor: Actor) -> NewRequestDraft:
        draft = self.drafts.get(_draft_key(actor.user_id))
        if draft is None:
            raise NotFoundError(
                "Your new-location draft expired. Start again with /request new.",
                entity="draft",
                key=actor.user_id,
            )
        return draft

    def infer_type(self, name: str, description: str) -> str:
        """Classifier label, or the fallback category on any failure."""
        try:
            label = self.classifier.classify(name, description)
        except Exception as e:
            self._logger.warning(
                "Type classification failed, using fallback",
                extra={"name": name, "error": str(e)},
            )
            return self.fallback_category
        if label and (not self.categories or label in self.categories):
            return label
        return self.fallback_category

    def draft_new_request(
        self,
        actor: Actor,
        coordinates_text: str,
        description: str,
        media_url: Optional[str] = None,
    ) -> NewRequestDraft:
        """Validate the details form and look for an existing similar entry.

        When ``near_match`` is set on the returned draft, the member must
        choose between merging and creating a distinct entry.
        """
        draft = self._get_draft(actor)
        coordinates = parse_coordinates(coordinates_text)
        description = _require_text(
            description, "description", "A description is required."
        )
        media_url = (media_url or "").strip() or None
        if media_url and not media_url.startswith(("http://", "https://")):
            raise ValidationError(
                "Media links must start with http:// or https://.", field="mediaUrl"
            )

        draft = replace(
            draft,
            coordinates=coordinates,
            description=description,
            media_url=media_url,
            type=self.infer_type(draft.name, description),
            near_match=self.resolver.find_near_match(draft.name),
            merge_target_id=None,
        )
        self.drafts.set(_draft_key(actor.user_id), draft)
        return draft

    def choose_new_path(
        self, actor: Actor, merge_into: Optional[str]
    ) -> NewRequestDraft:
        """Merge into ``merge_into`` (a location id) or keep the entry distinct.

        Raises:
            ValidationError: When keeping distinct an exact-name duplicate.
        """
        draft = self._get_draft(actor)
        if merge_into:
            target = self._get_location(merge_into)
            draft = replace(draft, name=target.name, merge_target_id=target.id)
        else:
            near = draft.near_match
            if near is not None and near.name.casefold() == draft.name.casefold():
                raise ValidationError(
                    f"'{near.name}' already exists. Merge into it or choose another name.",
                    field="name",
                )
            draft = replace(draft, near_match=None, merge_target_id=None)
        self.drafts.set(_draft_key(actor.user_id), draft)
        return draft

    def cancel_new_request(self, actor: Actor) -> bool:
        return self.drafts.invalidate(_draft_key(actor.user_id))

    def build_new_request(self, actor: Actor) -> RequestDraft:
        draft = self._get_draft(actor)
        if draft.coordinates is None:
            raise ValidationError(
                "Coordinates are required.", field="coordinates"
            )
        if draft.needs_path_choice:
            raise ValidationError(
                f"Choose whether to merge into '{draft.near_match.name}' first.",
                field="name",
            )
        new_data = {
            "name": draft.name,
            "coordinates": coordinates_to_json(draft.coordinates),
            "type": draft.type or self.fallback_category,
            "description": draft.description,
            "mediaUrl": [draft.media_url] if draft.media_url else [],
            "icon": None,
            "submittedBy": actor.user_id,
        }
        changes = {
            "name": ("", draft.name),
            "coordinates": ("", format_coordinates(draft.coordinates)),
            "type": ("", new_data["type"]),
            "description": ("", draft.description),
        }
        if draft.media_url:
            changes["mediaUrl"] = ("", draft.media_url)
        return RequestDraft(
            kind=RequestKind.NEW,
            requester_id=actor.user_id,
            title=draft.name,
            reason=draft.description,
            new_data=dump_snapshot(new_data),
            changes=changes,
        )

    def file_request(self, draft: RequestDraft, message_id: str) -> ChangeRequest:
        """Persist a pending request for the message that now displays it."""
        request = ChangeRequest(
            id=str(uuid4()),
            message_id=str(message_id),
            requester_id=draft.requester_id,
            kind=draft.kind,
            reason=draft.reason,
            current_data=draft.current_data,
            new_data=draft.new_data,
        )
        request = self.requests.add(request)
        if draft.kind is RequestKind.NEW:
            self.drafts.invalidate(_draft_key(draft.requester_id))
        if draft.session_target is not None:
            self.sessions.delete(draft.requester_id, draft.session_target)
        self._logger.info(
            "Request filed",
            extra={
                "request_id": request.id,
                "message_id": request.message_id,
                "kind": request.kind.value,
                "requester_id": request.requester_id,
            },
        )
        return request

    # ===================== Submission: edits =====================

    def begin_edit(self, actor: Actor, selection: str) -> EditTarget:
        location, index = self.resolver.find_target(selection)
        return EditTarget(location, index)

    def point_choices(self, location: Location) -> List[ResolvedCandidate]:
        """Wildcard first, then one entry per point, capped for a choice menu."""
        choices = [
            ResolvedCandidate(
                name=location.name,
                location_id=location.id,
                coordinate_index=WILDCARD,
                is_multi_point=True,
                point_count=location.point_count,
            )
        ]
        for index in range(min(location.point_count, MAX_POINT_CHOICES - 1)):
            choices.append(
                ResolvedCandidate(
                    name=location.name,
                    location_id=location.id,
                    coordinate_index=index,
                    is_multi_point=True,
                    point_count=location.point_count,
                    rank=index + 1,
                )
            )
        return choices

    def get_edit_session(self, actor: Actor, location_id: str) -> EditSession:
        return self.sessions.get(actor.user_id, location_id)

    def field_form_default(
        self,
        actor: Actor,
        location: Location,
        field_name: str,
        index: CoordinateIndex = None,
    ) -> str:
        """Text to pre-fill a field form: the pending edit, else the stored value."""
        pending = self.sessions.get(actor.user_id, location.id).field_edits.get(field_name)
        if pending is not None and pending.index == index:
            return pending.new_value
        return self._current_text(location, field_name, index)

    def record_field_edit(
        self,
        actor: Actor,
        location_id: str,
        field_name: str,
        raw_value: str,
        index: CoordinateIndex = None,
    ) -> EditSession:
        """Validate one field form and store it in the member's session."""
        location = self._get_location(location_id)
        text_to_field(field_name, raw_value)
        if field_name == "coordinates" and isinstance(index, int):
            check_index(location.coordinates, index)
            parse_point(raw_value)
        if field_name != "coordinates":
            index = None

        session = self.sessions.get(actor.user_id, location_id)
        edits = dict(session.field_edits)
        edits[field_name] = FieldEdit(
            old_value=self._current_text(location, field_name, index),
            new_value=raw_value.strip(),
            index=index,
        )
        return self.sessions.save(actor.user_id, location_id, location.name, edits)

    def _current_text(
        self, location: Location, field_name: str, index: CoordinateIndex
    ) -> str:
        if field_name == "coordinates":
            return format_coordinates(point_at(location.coordinates, index))
        return field_to_text(field_name, location_to_snapshot(location).get(field_name))

    def discard_edit_session(self, actor: Actor, location_id: str) -> bool:
        return self.sessions.delete(actor.user_id, location_id)

    def build_edit_request(
        self, actor: Actor, location_id: str, reason: str
    ) -> RequestDraft:
        """Turn the member's session into an edit request.

        Only fields whose values truly change are carried into the new
        snapshot.

        Raises:
            ValidationError: If no justification is given or nothing changes.
        """
        reason = _require_text(
            reason, "reason", "Please explain why this change is needed."
        )
        location = self._get_location(location_id)
        session = self.sessions.get(actor.user_id, location_id)
        if session.is_empty:
            raise ValidationError("You haven't edited any field yet.", field="fields")

        current = location_to_snapshot(location)
        new = dict(current)
        for field_name, edit in session.field_edits.items():
            if not edit.is_change:
                continue
            if field_name == "coordinates":
                value: Any = coordinates_to_json(
                    replace_point(
                        location.coordinates,
                        edit.index,
                        parse_coordinates(edit.new_value),
                    )
                )
            else:
                value = text_to_field(field_name, edit.new_value)
            new[field_name] = value

        changes = diff_snapshots(current, new)
        if not changes:
            raise ValidationError(
                "Those edits don't change anything.", field="fields"
            )
        return RequestDraft(
            kind=RequestKind.EDIT,
            requester_id=actor.user_id,
            title=location.name,
            reason=reason,
            current_data=dump_snapshot(current),
            new_data=dump_snapshot(new),
            changes={
                name: (field_to_text(name, old), field_to_text(name, value))
                for name, (old, value) in changes.items()
            },
            session_target=location_id,
        )

    # ===================== Submission: removals =====================

    def begin_remove(self, actor: Actor, selection: str) -> EditTarget:
        """Resolve the removal target. The wildcard is refused.

        A bare name targets the whole entry; an index targets one point.
        """
        location, index = self.resolver.find_target(selection)
        if index is WILDCARD:
            raise ValidationError(
                "Pick a single point to remove, or use the plain name to remove "
                "the whole entry.",
                field="index",
            )
        return EditTarget(location, index)

    def build_remove_request(
        self,
        actor: Actor,
        location_id: str,
        index: CoordinateIndex,
        reason: str,
    ) -> RequestDraft:
        reason = _require_text(
            reason, "reason", "Please explain why this should be removed."
        )
        if index is WILDCARD:
            raise ValidationError("Cannot remove every point at once.", field="index")
        location = self._get_location(location_id)
        if isinstance(index, int):
            check_index(location.coordinates, index)
            what = f"point #{index + 1}"
        else:
            what = "entire entry"
        return RequestDraft(
            kind=RequestKind.REMOVE,
            requester_id=actor.user_id,
            title=location.name,
            reason=reason,
            current_data=dump_snapshot(location_to_snapshot(location)),
            new_data=dump_snapshot(
                {"id": location.id, "pointIndex": index if isinstance(index, int) else REMOVE_ALL}
            ),
            changes={"remove": (format_selection(location.name, index), what)},
        )

    # ===================== Moderation =====================

    def approve(self, actor: Actor, message_id: str) -> ApprovalOutcome:
        """Apply a pending request to the map and mark it implemented."""
        self._require_admin(actor, "approve")
        request = self._load_pending(message_id)
        if request.kind is RequestKind.NEW:
            outcome = self._approve_new(actor, request)
        elif request.kind is RequestKind.EDIT:
            outcome = self._approve_edit(actor, request)
        else:
            outcome = self._approve_remove(actor, request)
        self._logger.info(
            "Request approved",
            extra={
                "request_id": request.id,
                "kind": request.kind.value,
                "approver_id": actor.user_id,
                "location_id": outcome.location_id,
                "fields": list(outcome.changed_fields),
            },
        )
        return outcome

    def _approve_new(self, actor: Actor, request: ChangeRequest) -> ApprovalOutcome:
        new = parse_snapshot(request.new_data, request.id)
        name = str(new.get("name") or "").strip()
        if not name:
            raise SnapshotError(
                "The stored request has no name.", request_id=request.id, reason="corrupt"
            )
        try:
            incoming = coordinates_from_json(new.get("coordinates"))
        except ValidationError as e:
            raise SnapshotError(
                "The stored request has unusable coordinates.",
                cause=e,
                request_id=request.id,
                reason="corrupt",
            )
        now = utcnow()
        matches = self.locations.find_by_name(name)

        if matches:
            target = next((m for m in matches if m.is_multi_point), matches[0])
            before = location_to_snapshot(target)
            fields: Dict[str, Any] = {
                "coordinates": coordinates_to_json(
                    merge_coordinates(target.coordinates, incoming)
                ),
                "approvedBy": actor.user_id,
                "lastModified": now,
            }
            media = list(target.media_urls)
            media.extend(url for url in new.get("mediaUrl") or [] if url not in media)
            if media != list(target.media_urls):
                fields["mediaUrl"] = media
            for key in ("description", "type"):
                value = new.get(key)
                if value and value != before.get(key):
                    fields[key] = value
            updated = self.locations.update(target.id, fields)
            self._after_location_change(f"merge:{request.id}")
            finished = self._finish(
                request,
                RequestStatus.IMPLEMENTED,
                actor,
                updated.id,
                current_data=dump_snapshot(before),
            )
            return ApprovalOutcome(
                request=finished,
                location_id=updated.id,
                changed_fields=tuple(k for k in fields if k in EDITABLE_FIELDS),
                merged=True,
            )

        created = self.locations.create(
            Location(
                id="",
                name=name,
                coordinates=incoming,
                type=str(new.get("type") or self.fallback_category),
                description=str(new.get("description") or ""),
                media_urls=tuple(new.get("mediaUrl") or ()),
                icon=new.get("icon"),
                submitted_by=new.get("submittedBy") or request.requester_id,
                approved_by=actor.user_id,
                last_modified=now,
            )
        )
        self._after_location_change(f"create:{request.id}")
        finished = self._finish(
            request,
            RequestStatus.IMPLEMENTED,
            actor,
            created.id,
            new_data=dump_snapshot(location_to_snapshot(created)),
        )
        return ApprovalOutcome(
            request=finished,
            location_id=created.id,
            changed_fields=("name", "coordinates", "type", "description"),
            created=True,
        )

    def _approve_edit(self, actor: Actor, request: ChangeRequest) -> ApprovalOutcome:
        current = parse_snapshot(request.current_data, request.id)
        new = parse_snapshot(request.new_data, request.id)
        location_id = current.get("id") or new.get("id")
        if not location_id:
            raise SnapshotError(
                "The stored snapshot does not identify a location.",
                request_id=request.id,
                reason="no_id",
            )
        changes = diff_snapshots(current, new)
        if not changes:
            finished = self._finish(request, RequestStatus.IMPLEMENTED, actor, None)
            return ApprovalOutcome(
                request=finished, location_id=str(location_id), no_changes=True
            )

        fields: Dict[str, Any] = {name: value for name, (_, value) in changes.items()}
        if "coordinates" in fields:
            try:
                coordinates_from_json(fields["coordinates"])
            except ValidationError as e:
                raise SnapshotError(
                    "The stored request has unusable coordinates.",
                    cause=e,
                    request_id=request.id,
                    reason="corrupt",
                )
        before = location_to_snapshot(self._get_location(str(location_id)))
        fields["approvedBy"] = actor.user_id
        fields["lastModified"] = utcnow()
        updated = self.locations.update(str(location_id), fields)
        self._after_location_change(f"edit:{request.id}")
        finished = self._finish(
            request,
            RequestStatus.IMPLEMENTED,
            actor,
            updated.id,
            current_data=dump_snapshot(before),
        )
        return ApprovalOutcome(
            request=finished,
            location_id=updated.id,
            changed_fields=tuple(changes),
        )

    def _approve_remove(self, actor: Actor, request: ChangeRequest) -> ApprovalOutcome:
        new = parse_snapshot(request.new_data, request.id)
        location_id = new.get("id")
        if not location_id and request.current_data:
            location_id = parse_snapshot(request.current_data, request.id).get("id")
        if not location_id:
            raise SnapshotError(
                "The stored request does not identify a location.",
                request_id=request.id,
                reason="no_id",
            )
        location = self._get_location(str(location_id))
        before = dump_snapshot(location_to_snapshot(location))
        point = new.get("pointIndex", REMOVE_ALL)

        remaining = None
        if point not in (None, REMOVE_ALL):
            try:
                remaining = remove_point(location.coordinates, int(point))
            except (TypeError, ValueError) as e:
                raise SnapshotError(
                    "The stored point index is invalid.",
                    cause=e,
                    request_id=request.id,
                    reason="corrupt",
                )

        if remaining is None:
            self.locations.delete(location.id)
            deleted = True
        else:
            self.locations.update(
                location.id,
                {
                    "coordinates": coordinates_to_json(remaining),
                    "approvedBy": actor.user_id,
                    "lastModified": utcnow(),
                },
            )
            deleted = False
        self._after_location_change(f"remove:{request.id}")
        finished = self._finish(
            request, RequestStatus.IMPLEMENTED, actor, location.id, current_data=before
        )
        return ApprovalOutcome(
            request=finished,
            location_id=location.id,
            changed_fields=() if deleted else ("coordinates",),
            deleted=deleted,
        )

    def open_moderation_session(self, actor: Actor, message_id: str) -> EditSession:
        """Start amending a pending request, seeded from its stored edits."""
        self._require_admin(actor, "modify")
        request = self._load_pending(message_id)
        if request.kind is RequestKind.REMOVE:
            raise ValidationError(
                "Removal requests cannot be modified.", field="kind"
            )
        reconstruction = reconstruct_edits(request)
        self._logger.info(
            "Moderation session opened",
            extra={
                "request_id": request.id,
                "moderator_id": actor.user_id,
                "strategy": reconstruction.strategy.value,
            },
        )
        return self.sessions.save(
            actor.user_id,
            moderation_target(message_id),
            self._request_title(request),
            reconstruction.edits,
        )

    def _request_title(self, request: ChangeRequest) -> str:
        for raw in (request.new_data, request.current_data):
            try:
                name = parse_snapshot(raw, request.id).get("name")
            except SnapshotError:
                continue
            if name:
                return str(name)
        return f"request {request.id[:8]}"

    def moderation_field_default(
        self, actor: Actor, message_id: str, field_name: str
    ) -> str:
        self._require_admin(actor, "modify")
        session = self.sessions.get(actor.user_id, moderation_target(message_id))
        edit = session.field_edits.get(field_name)
        if edit is not None:
            return edit.new_value
        request = self._load_pending(message_id)
        try:
            new = parse_snapshot(request.new_data, request.id)
        except SnapshotError:
            return ""
        return field_to_text(field_name, new.get(field_name))

    def amend_moderation_field(
        self, actor: Actor, message_id: str, field_name: str, raw_value: str
    ) -> EditSession:
        self._require_admin(actor, "modify")
        request = self._load_pending(message_id)
        text_to_field(field_name, raw_value)

        target = moderation_target(message_id)
        session = self.sessions.get(actor.user_id, target)
        edits = dict(session.field_edits)
        previous = edits.get(field_name)
        if previous is not None:
            old_value = previous.old_value
        else:
            try:
                current = parse_snapshot(request.current_data, request.id)
            except SnapshotError:
                current = {}
            old_value = field_to_text(field_name, current.get(field_name))
        edits[field_name] = FieldEdit(old_value=old_value, new_value=raw_value.strip())
        return self.sessions.save(
            actor.user_id,
            target,
            session.display_name or self._request_title(request),
            edits,
        )

    def approve_with_amendments(self, actor: Actor, message_id: str) -> ApprovalOutcome:
        """Fold the moderator's session into the request, then approve it."""
        self._require_admin(actor, "approve")
        request = self._load_pending(message_id)
        target = moderation_target(message_id)
        session = self.sessions.get(actor.user_id, target)
        if not session.is_empty:
            new = parse_snapshot(request.new_data, request.id)
            for field_name, edit in session.field_edits.items():
                new[field_name] = text_to_field(field_name, edit.new_value)
            self.requests.update_snapshots(request.id, new_data=dump_snapshot(new))
        self.sessions.delete(actor.user_id, target)
        return self.approve(actor, message_id)

    def deny(self, actor: Actor, message_id: str, reason: str) -> ChangeRequest:
        self._require_admin(actor, "deny")
        reason = _require_text(reason, "reason", "A reason for denial is required.")
        request = self._load_pending(message_id, RequestStatus.DISMISSED)
        dismissed = self.requests.update_status(
            request.id,
            RequestStatus.DISMISSED,
            approver_id=actor.user_id,
            approved_at=utcnow(),
        )
        self.sessions.delete(actor.user_id, moderation_target(message_id))
        self._logger.info(
            "Request dismissed",
            extra={
                "request_id": request.id,
                "moderator_id": actor.user_id,
                "reason": reason,
            },
        )
        return dismissed

    def undo(self, actor: Actor, request_id: str) -> ChangeRequest:
        """Restore the pre-approval state of an implemented request.

        Raises:
            InvalidTransitionError: If the request is not implemented.
            SnapshotError: If no usable pre-change snapshot is stored.
        """
        self._require_admin(actor, "undo")
        request = self._find_request(request_id)
        if not request.status.can_transition_to(RequestStatus.REVERTED):
            raise InvalidTransitionError(
                f"Only implemented requests can be undone (this one is "
                f"{request.status.value}).",
                current=request.status.value,
                target=RequestStatus.REVERTED.value,
            )
        if request.kind is RequestKind.NEW and request.current_data is None:
            raise SnapshotError(
                "This request created a new entry; remove the entry instead of undoing.",
                request_id=request.id,
                reason="missing",
            )
        location = snapshot_to_location(
            parse_snapshot(request.current_data, request.id), request.id
        )
        self.locations.restore(location)
        self._after_location_change(f"undo:{request.id}")
        reverted = self._finish(request, RequestStatus.REVERTED, actor, location.id)
        self._logger.info(
            "Request reverted",
            extra={"request_id": request.id, "moderator_id": actor.user_id},
        )
        return reverted

    # ===================== Queries =====================

    def request_info(self, actor: Actor, request_id: str) -> ChangeRequest:
        self._require_admin(actor, "info")
        return self._find_request(request_id)

    def list_requests(
        self,
        actor: Actor,
        status: Optional[RequestStatus] = None,
        limit: int = 25,
    ) -> List[ChangeRequest]:
        self._require_admin(actor, "list")
        return list(self.requests.list_by_status(status, limit=limit))

    def request_changes(self, request: ChangeRequest) -> Mapping[str, Tuple[str, str]]:
        """Field -> (old, new) display pairs for a stored request."""
        try:
            new = parse_snapshot(request.new_data, request.id)
        except SnapshotError:
            return {}
        try:
            current = parse_snapshot(request.current_data, request.id)
        except SnapshotError:
            current = {}
        return {
            name: (field_to_text(name, old), field_to_text(name, value))
            for name, (old, value) in diff_snapshots(current, new).items()
        }
