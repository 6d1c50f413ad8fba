from typing import NewType

QuoteId = NewType("QuoteId", int)
UserId = NewType("UserId", int)

# Quote ids are unsigned 32-bit integers; 0 is reserved for "no quote".
MAX_QUOTE_ID = 2**32 - 1
