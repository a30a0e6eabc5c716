"""Variational regularisation models built on the proximal solvers."""

from .tv import TVOptions, TVRegularizer, TVResult, tv_regularization_cppa

__all__ = ["TVOptions", "TVRegularizer", "TVResult", "tv_regularization_cppa"]
