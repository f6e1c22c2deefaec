from .init import add_parser as add_init_parser
from .upload import add_parser as add_upload_parser
from .parse_balances import add_parser as add_parse_balances_parser
from .read_balances import add_parser as add_read_balances_parser
from .balances import add_parser as add_balances_parser
from .parse_coa import add_parser as add_parse_coa_parser
from .parse_pcm import add_parser as add_parse_pcm_parser
from .project import add_parser as add_project_parser
from .user import add_parser as add_user_parser
from .review import add_parser as add_review_parser
from .unreview import add_parser as add_unreview_parser
from .status import add_parser as add_status_parser
from .signoff import add_parser as add_signoff_parser
from .unsign import add_parser as add_unsign_parser
from .comment import add_parser as add_comment_parser

__all__ = [
    "add_init_parser",
    "add_upload_parser",
    "add_parse_balances_parser",
    "add_read_balances_parser",
    "add_balances_parser",
    "add_parse_coa_parser",
    "add_parse_pcm_parser",
    "add_project_parser",
    "add_user_parser",
    "add_review_parser",
    "add_unreview_parser",
    "add_status_parser",
    "add_signoff_parser",
    "add_unsign_parser",
    "add_comment_parser",
]
