"""Comment endpoints for the Review Filter API.

Comments are listed per review with ``GET /comments?review_id=...``.
"""

from review_filter.policy.evaluator import ContentKind
from review_filter.schemas.content import CommentCreate, CommentResponse, CommentUpdate

from .content import build_content_router

router = build_content_router(ContentKind.COMMENT, CommentCreate, CommentUpdate, CommentResponse)
