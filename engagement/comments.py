#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Field comments: threads, addressing and resolution."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Any, Dict, List, Optional, Sequence

from engagement.database import get_document, list_documents, set_document
from engagement.models import Comment
from engagement.utils import EngagementError, utc_now_iso


logger = logging.getLogger(__name__)

COLLECTION = "comments"


def _comment_path(comment_id: str) -> str:
    return f"{COLLECTION}/{comment_id}"


def get_comment(conn: sqlite3.Connection, comment_id: str) -> Comment:
    document = get_document(conn, _comment_path(comment_id))
    if document is None:
        raise EngagementError("COMMENT_NOT_FOUND", f"Comment not found: {comment_id}")
    return Comment.from_dict({**document, "id": comment_id})


def create_comment(conn: sqlite3.Connection, data: Dict[str, Any]) -> Comment:
    """Create a thread root, or a reply when ``parent_comment_id`` is set.

    Replies must point at a root of the same project; threads are one level deep.
    """
    missing = [key for key in ("project_id", "section_id", "field_id", "author_id") if not data.get(key)]
    if missing:
        raise EngagementError("COMMENT_INVALID", f"Missing fields: {', '.join(missing)}", {"missing": missing})
    content = str(data.get("content") or "").strip()
    if not content:
        raise EngagementError("COMMENT_INVALID", "Comment content is empty")

    parent_id = data.get("parent_comment_id") or None
    if parent_id:
        parent = get_comment(conn, parent_id)
        if parent.project_id != data["project_id"]:
            raise EngagementError("COMMENT_INVALID", "Reply belongs to another project")
        if not parent.is_thread_root:
            raise EngagementError(
                "COMMENT_THREAD_DEPTH",
                "Replies can only be added to a thread root",
                {"parent_comment_id": parent_id},
            )

    comment = Comment(
        id=uuid.uuid4().hex,
        project_id=str(data["project_id"]),
        section_id=str(data["section_id"]),
        field_id=str(data["field_id"]),
        author_id=str(data["author_id"]),
        content=content,
        created_at=utc_now_iso(),
        parent_comment_id=parent_id,
        addressed_to=data.get("addressed_to") or None,
        updated_at=None,
        resolved=False,
    )
    body = comment.to_dict()
    body.pop("id")
    set_document(conn, _comment_path(comment.id), body, merge=False)
    logger.info("comment %s created on %s/%s", comment.id, comment.section_id, comment.field_id)
    return comment


def mark_resolved(conn: sqlite3.Connection, comment_id: str, user_id: str, resolved: bool = True) -> Comment:
    """Only the addressee or the author may change the resolved flag."""
    comment = get_comment(conn, comment_id)
    if user_id not in (comment.addressed_to, comment.author_id):
        raise EngagementError(
            "COMMENT_FORBIDDEN",
            f"User {user_id} cannot resolve comment {comment_id}",
        )
    comment.resolved = resolved
    comment.updated_at = utc_now_iso()
    set_document(
        conn,
        _comment_path(comment_id),
        {"resolved": comment.resolved, "updated_at": comment.updated_at},
        merge=True,
    )
    return comment


def list_comments(conn: sqlite3.Connection, project_id: str) -> List[Comment]:
    """All comments of a project, newest first."""
    documents = list_documents(conn, COLLECTION, where={"project_id": project_id})
    comments = [Comment.from_dict(item) for item in documents]
    # reversed insertion order keeps ties newest first
    comments.reverse()
    comments.sort(key=lambda item: item.created_at, reverse=True)
    return comments


def comments_by_field(comments: Sequence[Comment], section_id: str, field_id: str) -> List[Comment]:
    return [c for c in comments if c.section_id == section_id and c.field_id == field_id]


def comments_by_section(comments: Sequence[Comment], section_id: str) -> List[Comment]:
    return [c for c in comments if c.section_id == section_id]


def comments_addressed_to(comments: Sequence[Comment], user_id: str) -> List[Comment]:
    return [c for c in comments if c.addressed_to == user_id]


def field_comment_count(comments: Sequence[Comment], section_id: str, field_id: str) -> int:
    return sum(1 for c in comments_by_field(comments, section_id, field_id) if c.is_thread_root and not c.resolved)


def section_comment_count(comments: Sequence[Comment], section_id: str) -> int:
    return sum(1 for c in comments_by_section(comments, section_id) if c.is_thread_root and not c.resolved)


def build_threads(comments: Sequence[Comment]) -> List[Dict[str, Any]]:
    """Roots in the given order, each with its replies oldest first."""
    replies: Dict[str, List[Comment]] = {}
    for comment in comments:
        if comment.parent_comment_id:
            replies.setdefault(comment.parent_comment_id, []).append(comment)

    threads: List[Dict[str, Any]] = []
    for comment in comments:
        if not comment.is_thread_root:
            continue
        children = sorted(replies.get(comment.id, []), key=lambda item: item.created_at)
        threads.append({**comment.to_dict(), "replies": [child.to_dict() for child in children]})
    return threads


def comment_counts(comments: Sequence[Comment], section_id: Optional[str] = None) -> Dict[str, int]:
    """Unresolved root counts per ``section_id/field_id`` key."""
    counts: Dict[str, int] = {}
    for comment in comments:
        if section_id is not None and comment.section_id != section_id:
            continue
        if comment.is_thread_root and not comment.resolved:
            key = f"{comment.section_id}/{comment.field_id}"
            counts[key] = counts.get(key, 0) + 1
    return counts
