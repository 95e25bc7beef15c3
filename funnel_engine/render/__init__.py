from funnel_engine.render.views import Action, StepHandle, StepView, build_view

__all__ = ["Action", "StepHandle", "StepView", "build_view"]
