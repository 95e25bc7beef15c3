from funnel_engine.compiler.parser import load_funnel, parse_condition, parse_funnel, parse_funnel_text

__all__ = ["load_funnel", "parse_condition", "parse_funnel", "parse_funnel_text"]
