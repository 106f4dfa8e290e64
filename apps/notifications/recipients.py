"""Recipient resolution.

Maps an abstract recipient type (guest, front desk, …) to a concrete address
for a channel. Hotel settings and the staff directory are loaded once per
event into a :class:`TenantContext` that is passed in explicitly, which keeps
resolution itself a pure function of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from apps.hotels.models import Hotel, StaffMember

from .exceptions import RecipientUnresolved
from .models import Channel, RecipientType


@dataclass(frozen=True)
class StaffContact:
    id: int
    role: str
    full_name: str = ""
    phone: str = ""
    email: str = ""
    push_token: str = ""


@dataclass(frozen=True)
class TenantContext:
    tenant_id: int
    hotel_name: str = ""
    front_desk_phone: str = ""
    front_desk_email: str = ""
    preferences: Mapping[str, Any] = field(default_factory=dict)
    staff: tuple[StaffContact, ...] = ()

    @classmethod
    def load(cls, tenant_id) -> "TenantContext":
        """Read hotel settings and its active staff. Raises ``Hotel.DoesNotExist``."""
        hotel = Hotel.objects.get(pk=tenant_id)
        staff = StaffMember.objects.filter(hotel=hotel, is_active=True).order_by("id")
        return cls(
            tenant_id=hotel.pk,
            hotel_name=hotel.name,
            front_desk_phone=hotel.front_desk_phone,
            front_desk_email=hotel.front_desk_email,
            preferences=dict(hotel.notification_preferences or {}),
            staff=tuple(
                StaffContact(
                    id=member.pk,
                    role=member.role,
                    full_name=member.full_name,
                    phone=member.phone,
                    email=member.email,
                    push_token=member.push_token,
                )
                for member in staff
            ),
        )

    def staff_with_role(self, role: str) -> list[StaffContact]:
        return [member for member in self.staff if member.role == role]


@dataclass(frozen=True)
class Recipient:
    """A resolved destination for one channel."""

    recipient_type: RecipientType
    channel: Channel
    address: str
    actor_id: int | None = None
    display_name: str = ""


STAFF_ROLES = {
    RecipientType.FRONT_DESK: StaffMember.Role.FRONT_DESK,
    RecipientType.MANAGER: StaffMember.Role.MANAGER,
    RecipientType.HOUSEKEEPING_STAFF: StaffMember.Role.HOUSEKEEPING,
}

# Attribute of StaffContact / key of a guest hint holding the address for a channel.
CONTACT_FIELDS = {
    Channel.SMS: "phone",
    Channel.EMAIL: "email",
    Channel.PUSH: "push_token",
}

GUEST_TEMPLATE_KEYS = {
    Channel.SMS: "guest_phone",
    Channel.EMAIL: "guest_email",
    Channel.PUSH: "guest_push_token",
}


class RecipientResolver:
    """Resolves recipient types against a tenant context."""

    def resolve(
        self,
        context: TenantContext,
        recipient_type: RecipientType,
        channel: Channel,
        template_data: Mapping[str, Any] | None = None,
        hints: Iterable[Mapping[str, Any]] = (),
    ) -> Recipient:
        template_data = template_data or {}

        if channel == Channel.IN_APP:
            # Alerts are addressed to the role on the tenant's dashboard.
            return Recipient(recipient_type, channel, address=recipient_type.value)

        if recipient_type == RecipientType.GUEST:
            address = self._guest_address(channel, template_data, hints)
            if not address:
                raise RecipientUnresolved(recipient_type.value, channel.value)
            return Recipient(
                recipient_type,
                channel,
                address=address,
                display_name=str(template_data.get("guest_name", "")),
            )

        contact_field = CONTACT_FIELDS[channel]

        if recipient_type == RecipientType.FRONT_DESK:
            desk_address = {
                Channel.SMS: context.front_desk_phone,
                Channel.EMAIL: context.front_desk_email,
            }.get(channel, "")
            if desk_address:
                return Recipient(recipient_type, channel, address=desk_address, display_name="Front desk")

        for member in context.staff_with_role(STAFF_ROLES[recipient_type]):
            address = getattr(member, contact_field)
            if address:
                return Recipient(
                    recipient_type,
                    channel,
                    address=address,
                    actor_id=member.id,
                    display_name=member.full_name,
                )

        raise RecipientUnresolved(recipient_type.value, channel.value)

    @staticmethod
    def _guest_address(
        channel: Channel,
        template_data: Mapping[str, Any],
        hints: Iterable[Mapping[str, Any]],
    ) -> str:
        address = template_data.get(GUEST_TEMPLATE_KEYS[channel])
        if address:
            return str(address)

        contact_field = CONTACT_FIELDS[channel]
        for hint in hints or ():
            if isinstance(hint, Mapping) and hint.get("type") == RecipientType.GUEST and hint.get(contact_field):
                return str(hint[contact_field])
        return ""
