# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Online particle filtering of SDE-driven partially observed models in JAX."""

import logging
from importlib.metadata import PackageNotFoundError as _PackageNotFoundError
from importlib.metadata import version as _version

from pompjax.containers import (
    CredibleInterval,
    FilterState,
    FilterSummary,
    ForecastSummary,
    Observation,
    SimulatedObservation,
    state_at,
)
from pompjax.cox import cox_advance
from pompjax.errors import (
    DegenerateWeightsError,
    FilterError,
    IncompatibleParameterError,
    KernelNotImplementedError,
    NonMonotonicTimeError,
)
from pompjax.ess import effective_sample_size, ess, log_ess
from pompjax.filter import (
    filter_history,
    filter_stream,
    filter_summaries,
    forecast_stream,
    initialize,
    marginal_log_likelihood,
    step,
    step_with_forecast,
)
from pompjax.models import (
    Model,
    bernoulli_model,
    compose,
    gaussian_model,
    lgcp_model,
    poisson_model,
)
from pompjax.parameters import (
    BranchParameter,
    BrownianParameter,
    CIRParameter,
    LeafParameter,
    OrnsteinParameter,
    StepConstantParameter,
)
from pompjax.resampling import (
    get_resampler,
    invecdf,
    multinomial,
    resample,
    residual,
    stratified,
    systematic,
)
from pompjax.sde import (
    SdePath,
    SdePoint,
    step_brownian,
    step_cir,
    step_constant,
    step_identity,
    step_ornstein,
)
from pompjax.simulate import as_observations, simulate, simulate_lgcp
from pompjax.summary import order_statistic, summarize, weighted_mean
from pompjax.weights import normalize, stabilize

logging.getLogger(__name__).addHandler(logging.NullHandler())

try:
    __version__ = _version('pompjax')
except _PackageNotFoundError:
    __version__ = '0.0.0'

__all__ = [
    'BranchParameter',
    'BrownianParameter',
    'CIRParameter',
    'CredibleInterval',
    'DegenerateWeightsError',
    'FilterError',
    'FilterState',
    'FilterSummary',
    'ForecastSummary',
    'IncompatibleParameterError',
    'KernelNotImplementedError',
    'LeafParameter',
    'Model',
    'NonMonotonicTimeError',
    'Observation',
    'OrnsteinParameter',
    'SdePath',
    'SdePoint',
    'SimulatedObservation',
    'StepConstantParameter',
    '__version__',
    'as_observations',
    'bernoulli_model',
    'compose',
    'cox_advance',
    'effective_sample_size',
    'ess',
    'filter_history',
    'filter_stream',
    'filter_summaries',
    'forecast_stream',
    'gaussian_model',
    'get_resampler',
    'initialize',
    'invecdf',
    'lgcp_model',
    'log_ess',
    'marginal_log_likelihood',
    'multinomial',
    'normalize',
    'order_statistic',
    'poisson_model',
    'resample',
    'residual',
    'simulate',
    'simulate_lgcp',
    'stabilize',
    'state_at',
    'step',
    'step_brownian',
    'step_cir',
    'step_constant',
    'step_identity',
    'step_ornstein',
    'step_with_forecast',
    'stratified',
    'summarize',
    'systematic',
    'weighted_mean',
]
