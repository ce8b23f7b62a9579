from app.community.crud import Field, Resource
from app.community.modules.events.models import EVENT_STATUSES

EVENTS = Resource(
    collection="events",
    singular="Event",
    plural="Events",
    fields=(
        Field("title", "Event Title", required=True),
        Field("description", "Description", kind="textarea", required=True),
        Field("event_date", "Event Date", kind="datetime", required=True),
        Field("location", "Location", required=True),
        Field("registration_link", "Registration Link (Optional)", kind="url"),
        Field("image_url", "Image URL (Optional)", kind="url"),
        Field("status", "Status", kind="select", choices=EVENT_STATUSES, default="upcoming"),
    ),
    order=("-event_date",),
    owner_field="created_by",
    description="Create and manage community events",
    empty_message="No events yet. Create your first event!",
)
