"""
End-to-end value-of-information workflows.

Available pipelines:
- run_scenario_analysis: business inputs -> EVPI, EVSI, CoD, net value, decision
- run_named_scenario: one of the built-in example scenarios
"""

# Lazy imports so that importing the package does not pull in every
# calculator (and pandas) before a pipeline is actually used

__all__ = [
    'run_scenario_analysis',
    'run_named_scenario',
    'SCENARIOS',
]


def __getattr__(name: str):
    """
    Lazy import pipeline functions on first access.

    Parameters
    ----------
    name : str
        The attribute/function name being accessed

    Returns
    -------
    Any
        The imported function or module attribute

    Raises
    ------
    AttributeError
        If the requested attribute doesn't exist
    """
    if name == 'run_scenario_analysis':
        from experiment_value.pipelines.scenario_pipeline import run_scenario_analysis
        return run_scenario_analysis
    elif name == 'run_named_scenario':
        from experiment_value.pipelines.scenario_pipeline import run_named_scenario
        return run_named_scenario
    elif name == 'SCENARIOS':
        from experiment_value.pipelines.scenario_pipeline import SCENARIOS
        return SCENARIOS
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
