"""
Game constants for UNO.
"""

# Deck composition (per color)
ZERO_COPIES = 1
NUMBER_COPIES = 2  # 1-9
SPECIAL_COPIES = 2  # each of SKIP, DRAW2, REVERSE
MIN_NUMBER = 0
MAX_NUMBER = 9
DECK_SIZE = 4 * (ZERO_COPIES + 9 * NUMBER_COPIES + 3 * SPECIAL_COPIES)  # 100

# Dealing
HAND_SIZE = 7
MIN_PLAYERS = 2
MAX_PLAYERS = 10

# Penalties
DRAW2_CARDS = 2
UNO_PENALTY_CARDS = 2

# Move tokens
MOVE_VIEW_CARDS = "VIEW CARDS"
MOVE_VIEW_OTHERS = "VIEW CARDS -O"
MOVE_UNO = "UNO"
MOVE_DRAW = "DRAW"

# Follow-up prompt after drawing a playable card
DRAW_PROMPT = "play or skip?"
DECISION_PLAY = "play"
DECISION_SKIP = "skip"

CARD_SEPARATOR = ":"
