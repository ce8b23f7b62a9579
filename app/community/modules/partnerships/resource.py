from app.community.crud import Field, Resource

PARTNERSHIPS = Resource(
    collection="partnerships",
    singular="Partnership",
    plural="Partnerships",
    fields=(
        Field("name", "Organization Name", required=True),
        Field("description", "Description", kind="textarea", required=True),
        Field("website_url", "Website URL (Optional)", kind="url"),
        Field("logo_url", "Logo URL (Optional)", kind="url"),
    ),
    order=("-created_at",),
    title_field="name",
    description="Add and manage organizational partnerships",
    empty_message="No partnerships yet. Add your first partner!",
)
