"""
Value-of-Information Scenario Pipeline

End-to-end workflow from business inputs to a test / ship / don't-ship
recommendation:

Pipeline Steps:
1. Derive K from traffic, baseline conversion and value per conversion
2. Normalise the shipping threshold to lift units
3. Build the prior (shape + parameters, or a 90% interval)
4. Calculate EVPI (the ceiling on what any test is worth)
5. Derive sample sizes from the experiment design
6. Calculate EVSI for that design
7. Calculate Cost of Delay
8. Run the integrated net-value simulation
9. Make the recommendation and build report frames
"""

from typing import Any, Dict, Optional

from experiment_value.config import SimulationConfig
from experiment_value.core.distributions import (
    NormalPrior,
    PriorDistribution,
    StudentTPrior,
    UniformPrior,
)
from experiment_value.decision import cost_of_delay, evpi, evsi, net_value, verdict
from experiment_value.design import business_inputs, sample_size
from experiment_value import reporting
from experiment_value.types import CoDInputs, EVPIInputs, EVSIInputs, NetValueInputs


SCENARIOS: Dict[str, Dict[str, Any]] = {
    'default-prior': {
        'description': 'Default N(0, 5%) prior, ship any positive lift',
        'prior': NormalPrior(mu_L=0.0, sigma_L=0.05),
        'threshold_scenario': 'any-positive',
    },
    'minimum-lift': {
        'description': 'Same prior, require a 5% lift to ship',
        'prior': NormalPrior(mu_L=0.0, sigma_L=0.05),
        'threshold_scenario': 'minimum-lift',
        'threshold_value': 5,
        'threshold_unit': 'lift',
    },
    'uniform': {
        'description': 'Uniform prior between -10% and +10%',
        'prior': UniformPrior(low_L=-0.1, high_L=0.1),
        'threshold_scenario': 'any-positive',
    },
    'heavy-tailed': {
        'description': 'Student-t prior (df=3) centred on +1%',
        'prior': StudentTPrior(mu_L=0.01, sigma_L=0.03, df=3),
        'threshold_scenario': 'any-positive',
    },
    'risky-redesign': {
        'description': 'Prior with mass below -100% (truncated at the feasibility bound)',
        'prior': NormalPrior(mu_L=-0.9, sigma_L=0.2),
        'threshold_scenario': 'accept-loss',
        'threshold_value': -95,
        'threshold_unit': 'lift',
    },
}


def run_scenario_analysis(
    prior: PriorDistribution,
    threshold_scenario: str = 'any-positive',
    threshold_value: Optional[float] = None,
    threshold_unit: Optional[str] = None,
    annual_visitors: float = 1_000_000,
    baseline_conversion_rate: float = 0.05,
    value_per_conversion: float = 100.0,
    daily_traffic: float = 5_000,
    test_duration_days: float = 14,
    eligibility_fraction: float = 1.0,
    variant_fraction: float = 0.5,
    decision_latency_days: float = 7,
    test_cost: float = 0.0,
    config: Optional[SimulationConfig] = None,
    verbose: bool = True,
) -> Dict[str, Any]:
    """
    Run the full value-of-information analysis for one decision.

    Parameters
    ----------
    prior : PriorDistribution
        Prior over relative lift
    threshold_scenario : str, default='any-positive'
        'any-positive', 'minimum-lift' or 'accept-loss'
    threshold_value, threshold_unit : optional
        Threshold for the last two scenarios (percent lift or annual dollars)
    annual_visitors, baseline_conversion_rate, value_per_conversion : float
        Business inputs that set K
    daily_traffic, test_duration_days, eligibility_fraction, variant_fraction : float
        Experiment design
    decision_latency_days : float, default=7
        Days between the end of the test and acting on it
    test_cost : float, default=0.0
        Direct cost of running the test
    config : SimulationConfig, optional
        Monte Carlo settings
    verbose : bool, default=True
        Print progress and results

    Returns
    -------
    Dict[str, Any]
        - inputs: K, threshold_L and sample sizes
        - evpi, evsi, cost_of_delay, net_value: result records
        - decision: recommendation dict
        - breakdown: value breakdown DataFrame
        - density: prior density DataFrame
    """
    config = config or SimulationConfig()

    K = business_inputs.derive_k(annual_visitors, baseline_conversion_rate, value_per_conversion)
    threshold_L = business_inputs.normalize_threshold_to_lift(
        threshold_scenario, threshold_value, threshold_unit, K,
    )
    sizes = sample_size.derive_sample_sizes(
        daily_traffic, test_duration_days, eligibility_fraction, variant_fraction,
    )

    if verbose:
        print("=" * 80)
        print("VALUE OF INFORMATION ANALYSIS")
        print("=" * 80)
        print(f"\nK = ${K:,.0f} per unit lift | threshold = {threshold_L:+.2%}")
        print(f"Prior: {prior}")
        print(f"Design: {sizes['n_control']:,} control / {sizes['n_variant']:,} variant")

    evpi_result = evpi.calculate_evpi(
        EVPIInputs(K=K, prior=prior, threshold_L=threshold_L),
        tolerance=config.truncation_tolerance,
    )

    evsi_inputs = EVSIInputs(
        K=K,
        baseline_conversion_rate=baseline_conversion_rate,
        threshold_L=threshold_L,
        prior=prior,
        n_control=sizes['n_control'],
        n_variant=sizes['n_variant'],
    )
    evsi_result = evsi.calculate_evsi(evsi_inputs, config)

    cod_result = cost_of_delay.calculate_cost_of_delay(CoDInputs(
        K=K,
        mu_L=evpi_result.effective_mean,
        threshold_L=threshold_L,
        test_duration_days=test_duration_days,
        variant_fraction=variant_fraction,
        decision_latency_days=decision_latency_days,
    ))

    net_result = net_value.calculate_net_value(
        NetValueInputs(
            K=K,
            baseline_conversion_rate=baseline_conversion_rate,
            threshold_L=threshold_L,
            prior=prior,
            n_control=sizes['n_control'],
            n_variant=sizes['n_variant'],
            test_duration_days=test_duration_days,
            variant_fraction=variant_fraction,
            decision_latency_days=decision_latency_days,
        ),
        config,
    )

    decision = verdict.make_recommendation(
        evpi_result, net_value=net_result, evsi=evsi_result, cod=cod_result, test_cost=test_cost,
    )
    breakdown = reporting.value_breakdown_frame(evpi_result, evsi_result, cod_result, net_result)

    if verbose:
        print("\n" + breakdown.to_string(index=False))
        print(f"\nDefault decision: {evpi_result.default_decision}"
              f" | truncated: {evpi_result.truncation_applied}")
        for warning in evpi_result.warnings + evsi_result.warnings:
            print(f"  ! {warning.code}: {warning.message}")
        print(f"\nDecision: {decision['decision'].upper()} ({decision['confidence']} confidence)")
        print(f"  {decision['rationale']}")

    return {
        'inputs': {'K': K, 'threshold_L': threshold_L, **sizes},
        'evpi': evpi_result,
        'evsi': evsi_result,
        'cost_of_delay': cod_result,
        'net_value': net_result,
        'decision': decision,
        'breakdown': breakdown,
        'density': reporting.prior_density_frame(prior),
    }


def run_named_scenario(
    name: str,
    config: Optional[SimulationConfig] = None,
    verbose: bool = True,
) -> Dict[str, Any]:
    """Run one of the built-in ``SCENARIOS``."""
    if name not in SCENARIOS:
        raise ValueError(f"Unknown scenario: {name!r}. Choose from {sorted(SCENARIOS)}")

    scenario = SCENARIOS[name]
    if verbose:
        print(f"\nScenario '{name}': {scenario['description']}")
    return run_scenario_analysis(
        prior=scenario['prior'],
        threshold_scenario=scenario['threshold_scenario'],
        threshold_value=scenario.get('threshold_value'),
        threshold_unit=scenario.get('threshold_unit'),
        config=config,
        verbose=verbose,
    )
