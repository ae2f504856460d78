foo = 1

import circular_peer  # noqa: E402,F401
