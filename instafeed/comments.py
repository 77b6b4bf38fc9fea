"""
comments.py — Turning the flat comment list into what the feed renders.

/{media_id}/comments returns every comment and reply in one flat list, with
replies pointing at their parent through parent_id. Instagram only allows
one level of replies, so the tree is two levels: root comments, each with
its direct replies.
"""

import logging
from typing import Iterable, Optional, Union

from . import instagram_service
from .instagram_models import CommentNode, CommentRecord, PostCommentResponse, ReplyTarget

logger = logging.getLogger(__name__)


def _as_record(item: Union[CommentRecord, dict]) -> CommentRecord:
    if isinstance(item, CommentRecord):
        return item
    return CommentRecord.model_validate(item)


def build_tree(records: Iterable[Union[CommentRecord, dict]]) -> tuple[CommentNode, ...]:
    """
    Nest replies under their root comments.

    Roots are records without a parent_id, kept in input order. A reply is
    attached, unchanged, to the root its parent_id names, again in input
    order. Replies whose parent is not a root (an unknown id, or another
    reply) are dropped. The input is not modified.
    """
    records = [_as_record(r) for r in records]

    # First pass: roots, keyed by id (a repeated id resolves to the last one)
    roots: list[CommentRecord] = []
    root_index: dict[str, int] = {}
    for record in records:
        if not record.parent_id:
            root_index[record.id] = len(roots)
            roots.append(record)

    # Second pass: replies onto their root
    replies: list[list[CommentRecord]] = [[] for _ in roots]
    for record in records:
        if record.parent_id:
            index = root_index.get(record.parent_id)
            if index is None:
                continue
            replies[index].append(record)

    return tuple(
        CommentNode(**root.model_dump(exclude={"replies"}), replies=tuple(children))
        for root, children in zip(roots, replies)
    )


def post_reply(target: ReplyTarget, text: str, access_token: str) -> Optional[PostCommentResponse]:
    """
    Post `text` as a reply to target.comment_id, or as a new comment on
    target.media_id when no comment is selected.

    Blank text is not sent; returns None.
    """
    if not text.strip():
        return None

    if target.comment_id:
        data = instagram_service.create_reply(target.comment_id, text, access_token)
    else:
        data = instagram_service.create_comment(target.media_id, text, access_token)

    posted = PostCommentResponse.model_validate(data)
    logger.info(f"Posted {'reply' if target.comment_id else 'comment'} {posted.id} on media {target.media_id}")
    return posted
