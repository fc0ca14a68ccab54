"""genharness driver module.

Launches the generator under test and feeds it scripted answers.

Key classes:
    InteractiveDriver - process launch, drain-paced answer feeding, timeout
    InputPlan         - ordered answers with an explicit cursor
    RunResult         - exit status and captured output of one run
"""

from .interactive import CLOSE, InputPlan, InteractiveDriver, RunResult, feed_input, observe_drain

__all__ = [
    "InteractiveDriver",
    "InputPlan",
    "RunResult",
    "CLOSE",
    "feed_input",
    "observe_drain",
]
