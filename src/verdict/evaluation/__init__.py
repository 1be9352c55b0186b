"""
Condition and policy evaluation.

Import the pieces from their modules:
    from verdict.evaluation.evaluator import PolicyEvaluator
    from verdict.evaluation.resolver import AttributeResolver
    from verdict.evaluation.operators import compare
"""
