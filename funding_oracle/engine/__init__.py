"""
engine — Stateful model-based test oracle.

    factory    Precondition, Invariant, Command, CommandFactory
    arbitrary  value sources and weighted command generators
    sequence   seeded sequence generation
    runner     one trial against a fresh (model, real) pair
    shrink     minimal counterexample search
    oracle     generate → run → shrink → report
"""

from .errors import BODY, RESYNC, CommandFailure, CounterexampleFound, SetupError
from .factory import Command, CommandFactory, CommandSpec, Invariant, Precondition
from .arbitrary import Arbitrary, CommandGenerator, ConstantFrom, Integers, Just
from .sequence import SequenceEngine, derive_seeds
from .runner import TrialResult, TrialStatus, run_trial
from .shrink import DeltaDebuggingShrinker, ShrinkResult, ShrinkStrategy
from .oracle import ModelBasedOracle, OracleResult
