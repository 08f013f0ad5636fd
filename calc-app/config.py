"""
Tape Calc - App Configuration
"""

import os

# Touchscreen display
SCREEN_W = 480
SCREEN_H = 320
NAV_H    = 48

# Evaluation
EVAL_DEBOUNCE_S = 0.12      # settle delay for rapid typing (seconds)

# Tape widget
TAPE_VIEW_IN         = 2.5          # inches visible across the tape width
TAPE_MAX_IN          = 5280 * 12    # one mile, in inches
TAPE_SWIPE_START_PX  = 6            # drag distance before a tap becomes a scrub
TAPE_FLING_MIN_V     = 0.4          # inches/second needed to start a fling
TAPE_FLING_STOP_V    = 0.05         # inches/second at which a fling settles
TAPE_FLING_DECAY     = 0.92         # velocity factor per 1/60 s step

# Long-press thresholds (seconds)
BACKSPACE_HOLD_S = 0.75
FEET_HOLD_S      = 0.6
MEMORY_HOLD_S    = 0.6
RESULT_HOLD_S    = 0.6

# Persistence
STORAGE_PATH       = os.path.expanduser("~/.tape_calc.json")
MEMORY_KEY         = "memory_slots"
SAVED_EQ_KEY       = "saved_equations"
MEMORY_SLOT_COUNT  = 5
SAVED_EQ_LIMIT     = 50

# Status notices ("Equation saved.") stay up this long (seconds)
NOTICE_S = 2.0
