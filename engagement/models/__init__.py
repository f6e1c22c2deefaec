from .account import ChartAccount
from .balance import BalanceRow
from .comment import Comment
from .project import Project, SidebarSection, TeamAssignments, User
from .review import ReviewEntry, SectionReviews, SignOff, UnreviewLog

__all__ = [
    "BalanceRow",
    "ChartAccount",
    "Comment",
    "Project",
    "ReviewEntry",
    "SectionReviews",
    "SidebarSection",
    "SignOff",
    "TeamAssignments",
    "UnreviewLog",
    "User",
]
