"""
OCL News module.

- Posts are drafts until published; published_at is stamped once, the first
  time a post is published, and never moved afterwards
- Slugs derive from the title at creation and are immutable
- Each detail read (by id or slug) counts one view
- At most one image per post; replacing or deleting a post removes the old
  file on a best-effort basis
"""
