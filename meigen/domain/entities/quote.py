from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..value_objects.ids import MAX_QUOTE_ID, QuoteId, UserId

QUOTE_TEMPLATE = "Meigen No.{id}\n```\n{content}\n    --- {author}\n```"
# Characters the template contributes on top of id, author and content.
QUOTE_TEMPLATE_OVERHEAD = len("Meigen No.\n```\n\n    --- \n```")


class Quote(BaseModel):
    """A stored, attributed quote.

    Quotes are immutable values; stores hand out copies and never let callers
    modify what they hold.

    >>> Quote(id=QuoteId(1), author="Alice", content="Hello").format()
    'Meigen No.1\\n```\\nHello\\n    --- Alice\\n```'
    """

    id: QuoteId = Field(..., ge=1, le=MAX_QUOTE_ID, description="Store-assigned identifier")
    author: str = Field(..., description="Who said it")
    content: str = Field(..., description="The quote body")
    loved_by: frozenset[UserId] = Field(
        default_factory=frozenset, description="External user ids who liked the quote"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("author")
    @classmethod
    def _author_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("author must not be blank")
        return v

    @field_validator("loved_by")
    @classmethod
    def _non_negative_users(cls, v: frozenset[UserId]) -> frozenset[UserId]:
        if any(user_id < 0 for user_id in v):
            raise ValueError("loved_by user ids must be non-negative")
        return v

    def format(self) -> str:
        """Render the quote with the full display template."""
        return QUOTE_TEMPLATE.format(id=self.id, author=self.author, content=self.content)

    def is_loved_by(self, user_id: int) -> bool:
        return user_id in self.loved_by

    def to_record(self) -> dict[str, object]:
        """Plain mapping used by the persistence backends."""
        return {
            "id": int(self.id),
            "author": self.author,
            "content": self.content,
            "loved_by": sorted(int(u) for u in self.loved_by),
        }
