# tests/unit/test_classifier.py
"""
Convergence classifier: dwell-time logic, sentinels and termination.

Most tests run the kernels as plain Python (jit=False) to keep them fast;
one test checks that the numba build agrees.
"""
from __future__ import annotations

import numpy as np
import pytest

from magbasin import (
    Attractor,
    CashKarp54,
    ClassifierConfig,
    IntegrationResult,
    PendulumSystem,
    classify_point,
    OK,
    BUDGET_EXHAUSTED,
    CONVERGED,
    NAN_DETECTED,
    NEUTRAL_CENTER,
    UNRESOLVED,
)
from magbasin.analysis.classify import make_classifier

INTEGRATOR = CashKarp54(rel_tol=1e-6, abs_tol=1e-6, max_step_size=0.1)


def _reference_system() -> PendulumSystem:
    return PendulumSystem(
        height=0.05,
        mass=1.0,
        gravity=9.8,
        drag=0.2,
        length=10.0,
        attractors=(
            Attractor(-0.5, 0.8660254, 1.0),
            Attractor(-0.5, -0.8660254, 1.0),
            Attractor(1.0, 0.0, 1.0),
        ),
    )


def _free_system() -> PendulumSystem:
    return PendulumSystem(height=0.05, mass=1.0, gravity=9.8, drag=0.2, length=10.0)


def test_default_config_values():
    cfg = ClassifierConfig()
    assert cfg.max_trials == 1000
    assert cfg.initial_step == 0.01
    assert cfg.position_tolerance == 0.5
    assert cfg.center_tolerance == 0.1
    assert cfg.dwell_time == 5.0


def test_attractor_self_convergence():
    """Bob released at rest over the only attractor stays there and converges."""
    system = PendulumSystem(
        height=0.5, mass=1.0, gravity=9.8, drag=0.2, length=10.0,
        attractors=(Attractor(1.0, 0.0, 2.0),),
    )
    res = classify_point(system, INTEGRATOR, [1.0, 0.0, 0.0, 0.0], jit=False)

    assert res.converge_result == 0
    assert res.status == CONVERGED
    assert res.converged
    assert res.converge_time > 5.0
    assert 0 < res.step_count < 1000


def test_neutral_center_convergence():
    """Without attractors a small swing decays inside the center box."""
    res = classify_point(_free_system(), INTEGRATOR, [0.05, 0.05, 0.0, 0.0], jit=False)

    assert res.converge_result == NEUTRAL_CENTER
    assert res.status == CONVERGED
    assert res.converge_time > 5.0


def test_budget_exhausted_without_any_region_returns_unresolved():
    cfg = ClassifierConfig(max_trials=5)
    res = classify_point(_free_system(), INTEGRATOR, [3.0, 0.0, 0.0, 0.0], cfg, jit=False)

    assert res.converge_result == UNRESOLVED
    assert res.status == BUDGET_EXHAUSTED
    assert not res.converged
    assert res.step_count <= 5


def test_budget_exhausted_reports_last_region_entered():
    """A swing through a (widened) center box is remembered but not confirmed."""
    cfg = ClassifierConfig(max_trials=60, center_tolerance=0.5)
    res = classify_point(_free_system(), INTEGRATOR, [3.0, 0.0, 0.0, 0.0], cfg, jit=False)

    assert res.converge_result == NEUTRAL_CENTER
    assert res.status == BUDGET_EXHAUSTED


def test_reference_scenario_terminates_within_budget():
    res = classify_point(_reference_system(), INTEGRATOR, [0.001, 0.001, 0.0, 0.0], jit=False)

    assert res.converge_result in {-2, -1, 0, 1, 2}
    assert res.status in {CONVERGED, BUDGET_EXHAUSTED}
    assert 0 <= res.step_count <= 1000


def test_classification_is_deterministic():
    system = _reference_system()
    first = classify_point(system, INTEGRATOR, [0.6, -0.4, 0.0, 0.0], jit=False)
    # classify something else in between; nothing is shared between points
    classify_point(system, INTEGRATOR, [-1.2, 0.3, 0.0, 0.0], jit=False)
    second = classify_point(system, INTEGRATOR, [0.6, -0.4, 0.0, 0.0], jit=False)
    assert first == second


def test_initial_state_is_not_mutated():
    state = np.array([0.6, -0.4, 0.0, 0.0])
    classify_point(_reference_system(), INTEGRATOR, state, ClassifierConfig(max_trials=50), jit=False)
    np.testing.assert_array_equal(state, [0.6, -0.4, 0.0, 0.0])


def test_state_outside_sphere_ends_with_nan_status():
    res = classify_point(_reference_system(), INTEGRATOR, [11.0, 0.0, 0.0, 0.0], jit=False)

    assert res.status == NAN_DETECTED
    assert res.converge_result == UNRESOLVED
    assert res.step_count == 0
    assert res.converge_time == 0.0


def test_first_matching_attractor_wins():
    """Overlapping boxes: the lower index is reported."""
    system = PendulumSystem(
        height=0.5, mass=1.0, gravity=9.8, drag=0.2, length=10.0,
        attractors=(Attractor(1.0, 0.0, 2.0), Attractor(1.1, 0.0, 0.0)),
    )
    res = classify_point(system, INTEGRATOR, [1.0, 0.0, 0.0, 0.0], jit=False)
    assert res.converge_result == 0
    assert res.status == CONVERGED


@pytest.mark.parametrize("kwargs", [{"max_trials": 0}, {"initial_step": 0.0}, {"dwell_time": -1.0}])
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        ClassifierConfig(**kwargs)


def test_jit_classifier_matches_python():
    pytest.importorskip("numba")
    system = PendulumSystem(
        height=0.5, mass=1.0, gravity=9.8, drag=0.2, length=10.0,
        attractors=(Attractor(1.0, 0.0, 2.0),),
    )
    r_py = classify_point(system, INTEGRATOR, [1.0, 0.0, 0.0, 0.0], jit=False)
    r_jit = classify_point(system, INTEGRATOR, [1.0, 0.0, 0.0, 0.0], jit=True)

    assert isinstance(r_jit, IntegrationResult)
    assert r_jit.converge_result == r_py.converge_result
    assert r_jit.status == r_py.status
    assert r_jit.converge_time == pytest.approx(r_py.converge_time, rel=1e-6)


def test_rejected_attempts_consume_budget_but_not_step_count():
    integrator = CashKarp54(rel_tol=1e-10, abs_tol=1e-10, max_step_size=0.1)
    cfg = ClassifierConfig(max_trials=10, initial_step=2.0)
    res = classify_point(_reference_system(), integrator, [0.5, 0.0, 0.0, 0.0], cfg, jit=False)

    assert res.status == BUDGET_EXHAUSTED
    # the oversized first step is rejected at least once
    assert 0 < res.step_count < cfg.max_trials


def test_result_status_is_required():
    with pytest.raises(TypeError):
        IntegrationResult(0, 6.0, 12)  # type: ignore[call-arg]


# ---- dwell-time logic against a scripted stepper ---------------------------

TARGETS = np.array([[1.0, 0.0]])
IN_BOX = (1.0, 0.0)
CENTER = (0.0, 0.0)
OUTSIDE = (3.0, 3.0)


def _scripted_stepper(positions):
    """Accept every attempt, advance t by 1 and move the bob to the next scripted position."""
    calls = [0]

    def stepper(t, h, y_curr, params, ws, stepper_config, y_prop, t_prop, dt_next, err_est):
        px, py = positions[min(calls[0], len(positions) - 1)]
        calls[0] += 1
        y_prop[:] = y_curr
        y_prop[0] = px
        y_prop[1] = py
        t_prop[0] = t + 1.0
        dt_next[0] = h
        err_est[0] = 0.0
        return OK

    return stepper


def _run_script(positions):
    classify = make_classifier(_scripted_stepper(positions), 4)
    cfg = ClassifierConfig(max_trials=30, initial_step=1.0, dwell_time=5.0).pack()
    return classify(np.zeros(4), np.zeros(1), TARGETS, cfg, np.zeros(7))


def test_leaving_and_reentering_box_keeps_dwell_clock():
    # enters at t=1, out at t=2..3, back from t=4 on
    positions = [IN_BOX, OUTSIDE, OUTSIDE] + [IN_BOX] * 20
    region, t, step_count, status = _run_script(positions)

    assert status == CONVERGED
    assert region == 0
    # first t with t - 1 > 5; a restarted clock would give t == 10
    assert t == 7.0
    assert step_count == 7


def test_entering_another_region_restarts_dwell_clock():
    # attractor at t=1, center at t=2..3, attractor again from t=4 on
    positions = [IN_BOX, CENTER, CENTER] + [IN_BOX] * 20
    region, t, step_count, status = _run_script(positions)

    assert status == CONVERGED
    assert region == 0
    assert t == 10.0


def test_no_match_before_any_region_stays_unresolved():
    region, t, step_count, status = _run_script([OUTSIDE] * 40)
    assert region == UNRESOLVED
    assert status == BUDGET_EXHAUSTED
    assert step_count == 30
