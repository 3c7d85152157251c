"""Section comments on candidate profiles, with single-level replies."""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hr_admin.models.base import as_utc
from hr_admin.models.recruitment import CandidateComment
from hr_admin.platform.errors import NotFoundError, PermissionDeniedError, ValidationError
from hr_admin.services.recruitment_service import RecruitmentService

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 5000


def _validate_text(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required", code="comment_required")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment must be less than {MAX_COMMENT_LENGTH} characters",
            code="comment_too_long",
        )
    return text


def _validate_rating(rating: Optional[int], is_reply: bool) -> None:
    if rating is None:
        return
    if is_reply:
        raise ValidationError("Ratings are not allowed on replies", code="reply_rating_not_allowed")
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be a number between 1 and 5", code="invalid_rating")


class CandidateCommentService:
    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id

    def serialize(self, comment: CandidateComment, with_replies: bool = True) -> Dict[str, Any]:
        author = comment.author
        data = {
            "id": comment.id,
            "candidate_id": comment.candidate_id,
            "parent_comment_id": comment.parent_comment_id,
            "section_key": comment.section_key,
            "comment": comment.comment,
            "rating": comment.rating,
            "created_at": as_utc(comment.created_at).isoformat() if comment.created_at else None,
            "author": (
                {"id": author.id, "first_name": author.first_name, "last_name": author.last_name}
                if author is not None
                else None
            ),
        }
        if with_replies and comment.parent_comment_id is None:
            data["replies"] = [self.serialize(r, with_replies=False) for r in comment.replies]
        return data

    def _scoped(self, candidate_id: str):
        return self.db.query(CandidateComment).filter(
            CandidateComment.organization_id == self.organization_id,
            CandidateComment.candidate_id == candidate_id,
        )

    def list_comments(self, candidate_id: str, section_key: Optional[str] = None) -> Dict[str, Any]:
        """
        Top-level comments with their replies, plus per-section counts.

        Counts cover every section and include replies, whatever the filter.
        """
        RecruitmentService(self.db, self.organization_id).get_candidate(candidate_id)

        query = self._scoped(candidate_id).filter(CandidateComment.parent_comment_id.is_(None))
        if section_key:
            query = query.filter(CandidateComment.section_key == section_key)
        comments = query.order_by(CandidateComment.created_at.desc()).all()

        sections = Counter(key for (key,) in self._scoped(candidate_id).with_entities(CandidateComment.section_key))
        return {
            "comments": [self.serialize(c) for c in comments],
            "counts": {"total": sum(sections.values()), "by_section": dict(sections)},
        }

    def get_comment(self, candidate_id: str, comment_id: str) -> CandidateComment:
        comment = self._scoped(candidate_id).filter(CandidateComment.id == comment_id).first()
        if comment is None:
            raise NotFoundError("Comment not found", code="comment_not_found")
        return comment

    def create_comment(self, candidate_id: str, data: Dict[str, Any], user_id: str) -> CandidateComment:
        RecruitmentService(self.db, self.organization_id).get_candidate(candidate_id)
        text = _validate_text(data.get("comment"))
        parent_id = data.get("parent_comment_id")
        section_key = (data.get("section_key") or "").strip()

        if parent_id:
            parent = self._scoped(candidate_id).filter(CandidateComment.id == parent_id).first()
            if parent is None:
                raise NotFoundError("Parent comment not found", code="parent_comment_not_found")
            if parent.parent_comment_id is not None:
                raise ValidationError(
                    "Cannot reply to a reply. Only single-level threading is supported.",
                    code="nested_reply",
                )
            section_key = parent.section_key
        elif not section_key:
            raise ValidationError("Section key is required for top-level comments", code="section_key_required")
        _validate_rating(data.get("rating"), is_reply=bool(parent_id))

        comment = CandidateComment(
            organization_id=self.organization_id,
            candidate_id=candidate_id,
            user_id=user_id,
            parent_comment_id=parent_id or None,
            section_key=section_key,
            comment=text,
            rating=data.get("rating"),
        )
        self.db.add(comment)
        self.db.flush()
        logger.info(
            "Candidate comment added",
            extra={"org_id": self.organization_id, "candidate_id": candidate_id, "comment_id": comment.id},
        )
        return comment

    def _own(self, candidate_id: str, comment_id: str, user_id: str, verb: str) -> CandidateComment:
        comment = self.get_comment(candidate_id, comment_id)
        if comment.user_id != user_id:
            raise PermissionDeniedError(f"You can only {verb} your own comments", code="not_comment_author")
        return comment

    def update_comment(self, candidate_id: str, comment_id: str, data: Dict[str, Any], user_id: str) -> CandidateComment:
        comment = self._own(candidate_id, comment_id, user_id, "edit")
        if "comment" in data:
            comment.comment = _validate_text(data["comment"])
        if "rating" in data:
            _validate_rating(data["rating"], is_reply=comment.parent_comment_id is not None)
            comment.rating = data["rating"]
        self.db.flush()
        return comment

    def delete_comment(self, candidate_id: str, comment_id: str, user_id: str) -> None:
        """Delete an own comment; a top-level comment takes its replies with it."""
        comment = self._own(candidate_id, comment_id, user_id, "delete")
        self.db.delete(comment)
        self.db.flush()
