"""
Short import surface for test modules.
"""

from tests.utils import FailingRound
from tests.utils import FakeChatClient
from tests.utils import MODEL
from tests.utils import TruncatedRound
from tests.utils import get_client
from tests.utils import last_user_text
from tests.utils import raw_tool_round
from tests.utils import run_tests
from tests.utils import text_round
from tests.utils import tool_round
