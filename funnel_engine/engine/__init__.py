from funnel_engine.engine.interpreter import ActionResult, Interpreter
from funnel_engine.engine.results import MockResultsProvider, ResultsProvider

__all__ = ["ActionResult", "Interpreter", "MockResultsProvider", "ResultsProvider"]
