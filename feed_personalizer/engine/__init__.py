"""
Personalization engine: turns a raw daily catalog into the few items shown
to one user, and learns from that user's clicks.

Modules
-------
sanitizer    : sanitize_catalog() — raw feed items -> validated Item list.
scorer       : priority() + score_item() + score_items() — pure functions.
sampler      : select() + pick_index() — promotion pass-through and weighted
               sampling without replacement.
updater      : update_weights() — low-pass filter weight update per click.
telemetry    : observers + selectedList / chosenLookbook event builders.
personalizer : PersonalizationEngine — choose() / click() orchestration.
"""

from feed_personalizer.engine.personalizer import PersonalizationEngine

__all__ = ["PersonalizationEngine"]
