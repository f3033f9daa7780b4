from typing import List

from pydantic import Field, model_validator

from .chat import CamelModel


class StudySession(CamelModel):
    id: str
    group_id: str
    title: str
    scheduled_time: str
    location: str = ""
    attendees: List[str] = Field(default_factory=list)
    created_by: str

    @model_validator(mode="after")
    def _creator_attends(self):
        # attendees is a set; the creator is always a member
        seen = []
        for user_id in [self.created_by, *self.attendees]:
            if user_id not in seen:
                seen.append(user_id)
        self.attendees = seen
        return self
