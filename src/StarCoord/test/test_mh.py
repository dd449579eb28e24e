import math
import numpy as np
import pytest
from StarCoord.CoordinatedExponential import CoordinatedExponential
from StarCoord.DiscreteRateCycle import DiscreteRateCycle
from StarCoord.MetropolisHastings import (MetropolisHastings,
                                          MetropolisHastingsException,
                                          WeightedKernel)
from StarCoord.Model import CoalescentModel
from StarCoord.Move import MoveError
from StarCoord.State import State
from treebuild import FixedExponential, build_tree, random_tree


def small_model(branch_rates : list[int] = None) -> CoalescentModel:
    species = build_tree(((("A", 0.0), ("B", 0.0), 1.0),
                          (("C", 0.0), ("D", 0.0), 0.5), 2.0))
    genes = [build_tree(((("A_1", 0.0), ("C_1", 0.0), 2.5),
                         (("B_1", 0.0), ("D_1", 0.0), 2.2), 3.0)),
             build_tree(((("A_1", 0.0), ("B_1", 0.0), 1.2),
                         (("C_1", 0.0), ("D_1", 0.0), 0.8), 2.4))]
    return CoalescentModel(species, genes, branch_rates = branch_rates)


def root_prior(model : CoalescentModel) -> float:
    # Exponential(1) prior on the species root height, nothing else
    return -model.species_tree.get_root().get_height()


def all_heights(model : CoalescentModel) -> list[dict[int, float]]:
    return [tree.get_heights() for tree in model.trees()]


class TestDiscreteRateCycle:

    def test_cycle(self):
        model = small_model(branch_rates = list(range(7)))
        move = DiscreteRateCycle(model, k = 3, rng = np.random.default_rng(4))
        before = model.branch_rates.copy()

        assert move.propose() == 0.0
        changed = np.flatnonzero(model.branch_rates != before)
        assert len(changed) == 3
        assert sorted(model.branch_rates) == sorted(before)

        move.undo(model)
        assert np.array_equal(model.branch_rates, before)

    def test_whole_cycle(self):
        model = small_model(branch_rates = [0, 0, 0, 1, 1, 2, 2])
        move = DiscreteRateCycle(model, k = 7, rng = np.random.default_rng(8))
        move.propose()
        assert sorted(model.branch_rates) == [0, 0, 0, 1, 1, 2, 2]

    def test_limits(self):
        model = small_model(branch_rates = list(range(7)))
        move = DiscreteRateCycle(model, k = 3)
        assert move.limits(model) == (3, 7)
        move.set_coercable_parameter_value(100.0)
        assert move.discrete_k(model) == 7
        move.set_coercable_parameter_value(0.1)
        assert move.discrete_k(model) == 3

    def test_no_rates(self):
        move = DiscreteRateCycle(small_model())
        with pytest.raises(MoveError):
            move.propose()


class TestState:

    def test_revert(self):
        model = small_model()
        before = all_heights(model)
        state = State(model)
        move = CoordinatedExponential(model, rng = np.random.default_rng(1))
        assert state.generate_next(move)
        state.revert(move)
        assert all_heights(model) == before

    def test_commit(self):
        model = small_model()
        state = State(model)
        move = CoordinatedExponential(model, rng = FixedExponential(1.5))
        state.generate_next(move)
        state.commit(move)
        assert move.undo_info is None
        assert model.species_tree.get_root().get_height() == pytest.approx(2.5)

    def test_invalid_is_reverted(self):
        model = small_model()
        before = all_heights(model)
        state = State(model, validate = lambda m : False)
        move = CoordinatedExponential(model, rng = np.random.default_rng(1))
        assert not state.generate_next(move)
        assert all_heights(model) == before

    def test_zero_draw_is_valid(self):
        species = build_tree(((("a", 0.0), ("b", 0.0), 0.1), ("c", 0.0), 1.0))
        model = CoalescentModel(species, [])
        state = State(model)
        move = CoordinatedExponential(model, rng = FixedExponential(0.0))

        assert state.generate_next(move)
        assert species.get_root().get_height() == 0.1
        assert model.is_monotone()

    def test_summary(self):
        model = small_model()
        state = State(model)
        state.write_line_to_summary("  hello  ")
        assert model.summary_str == "hello\n"


class TestWeightedKernel:

    def test_weights(self):
        first = CoordinatedExponential(small_model())
        second = CoordinatedExponential(small_model())
        kernel = WeightedKernel([first, second], [0.0, 1.0],
                                rng = np.random.default_rng(0))
        assert all(kernel.generate() is second for _ in range(20))

    def test_bad_weights(self):
        move = CoordinatedExponential(small_model())
        with pytest.raises(MetropolisHastingsException):
            WeightedKernel([])
        with pytest.raises(MetropolisHastingsException):
            WeightedKernel([move], [1.0, 2.0])
        with pytest.raises(MetropolisHastingsException):
            WeightedKernel([move], [0.0])


class TestMetropolisHastings:

    def test_run(self):
        model = small_model(branch_rates = [0, 1, 2, 0, 1, 2, 0])
        rng = np.random.default_rng(17)
        coordinated = CoordinatedExponential(model, beta = 0.5, rng = rng)
        cycle = DiscreteRateCycle(model, rng = rng, optimise = False)
        kernel = WeightedKernel([coordinated, cycle], [3.0, 1.0], rng = rng)
        chain = MetropolisHastings(kernel, model, root_prior, num_iter = 300,
                                   rng = rng)

        state = chain.run()

        assert state.current_model is model
        assert len(chain.trace) == 300
        assert model.is_monotone()
        assert coordinated.accepted + coordinated.rejected > 0
        assert coordinated.accepted > 0
        assert coordinated.beta != 0.5
        assert cycle.accepted + cycle.rejected > 0
        assert sorted(model.branch_rates) == [0, 0, 0, 1, 1, 2, 2]
        assert "DONE. EXITED WITH 0 ERRORS" in model.summary_str
        for _, log_posterior, root_height in chain.trace:
            assert log_posterior == pytest.approx(-root_height)

    def test_random_trees_stay_ordered(self):
        rng = np.random.default_rng(99)
        species_names = ["S" + str(k) for k in range(6)]
        species = random_tree(species_names, rng)
        tips = [name + "_" + str(k) for name in species_names for k in range(2)]
        genes = [random_tree(tips, rng) for _ in range(4)]
        model = CoalescentModel(species, genes)
        move = CoordinatedExponential(model, rng = rng)
        chain = MetropolisHastings(WeightedKernel([move], rng = rng), model,
                                   root_prior, num_iter = 200, rng = rng)
        chain.run()
        assert model.is_monotone()

    def test_rejected_chain_keeps_heights(self):
        model = small_model()
        start = model.species_tree.get_root().get_height()

        def only_start(m : CoalescentModel) -> float:
            if m.species_tree.get_root().get_height() == start:
                return 0.0
            return -math.inf

        before = all_heights(model)
        move = CoordinatedExponential(model, rng = np.random.default_rng(2))
        chain = MetropolisHastings(WeightedKernel([move]), model, only_start,
                                   num_iter = 20)
        chain.run()
        assert all_heights(model) == before
        assert move.accepted == 0
        assert move.rejected == 20

    def test_bad_setup(self):
        model = small_model()
        kernel = WeightedKernel([CoordinatedExponential(model)])
        with pytest.raises(MetropolisHastingsException):
            MetropolisHastings(kernel, model, root_prior, num_iter = -1)
        model.species_tree.get_root().set_height(0.1)
        with pytest.raises(MetropolisHastingsException):
            MetropolisHastings(kernel, model, root_prior)
