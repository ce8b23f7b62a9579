from app.community.crud import Field, Resource

POSTS = Resource(
    collection="posts",
    singular="Post",
    plural="Posts",
    fields=(
        Field("title", "Post Title", required=True),
        Field("excerpt", "Excerpt (Short Description)", kind="textarea", rows=2),
        Field("content", "Content", kind="textarea", required=True, rows=10),
        Field("image_url", "Image URL (Optional)", kind="url"),
        Field("published", "Publish immediately", kind="checkbox", default=False),
    ),
    order=("-created_at",),
    owner_field="created_by",
    description="Create and publish community content",
    empty_message="No posts yet. Create your first post!",
)
