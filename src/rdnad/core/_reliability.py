from __future__ import annotations

__all__ = []

import numpy as np
from numpy.typing import ArrayLike, NDArray

from rdnad.exceptions import ValidationError
from rdnad.utils._array import as_numpy


def ensemble_agreement(ensemble_labels: ArrayLike, reference_labels: ArrayLike) -> NDArray[np.float64]:
    """
    Calculates the fraction of ensemble members agreeing with each instance's reference label.

    Agreement is a proxy for local bias: :math:`|Obs \\cap Pred| / M` for an ensemble of M models.

    Parameters
    ----------
    ensemble_labels : ArrayLike
        Labels predicted by each ensemble member, shape (N, M).
    reference_labels : ArrayLike
        Reference label of each instance, shape (N,).

    Returns
    -------
    NDArray[np.float64]
        Agreement in [0, 1] per instance, shape (N,).

    Examples
    --------
    >>> ensemble_agreement([["a", "a", "b", "a"], ["b", "a", "a", "a"]], ["a", "b"])
    array([0.75, 0.25])
    """
    labels = as_numpy(ensemble_labels, required_ndim=2)
    reference = as_numpy(reference_labels, required_ndim=1)
    if len(labels) != len(reference):
        raise ValidationError(f"Got ensemble labels for {len(labels)} instances but {len(reference)} reference labels.")
    if labels.shape[1] == 0:
        raise ValidationError("Ensemble must have at least one member.")
    return np.mean(labels == reference[:, np.newaxis], axis=1, dtype=np.float64)


def ensemble_dispersion(ensemble_probabilities: ArrayLike) -> NDArray[np.float64]:
    """
    Calculates the ensemble standard deviation of one class probability for each instance.

    Dispersion is a proxy for local precision. The sample standard deviation (``ddof=1``)
    is used, following Tetko et al. [1].

    Parameters
    ----------
    ensemble_probabilities : ArrayLike
        Probability of one class predicted by each ensemble member, shape (N, M) with M >= 2.

    Returns
    -------
    NDArray[np.float64]
        Standard deviation per instance, shape (N,).

    References
    ----------
    [1] IV Tetko, I Sushko, et al. Critical Assessment of QSAR models of environmental toxicity
    against Tetrahymena pyriformis: focusing on applicability domain and overfitting by variable
    selection. J Chem Inf Model. 2008. 48(9):1733-46.
    """
    probabilities = as_numpy(ensemble_probabilities, dtype=np.float64, required_ndim=2)
    if probabilities.shape[1] < 2:
        raise ValidationError("Ensemble must have at least two members to estimate dispersion.")
    if not np.isfinite(probabilities).all() or ((probabilities < 0) | (probabilities > 1)).any():
        raise ValidationError("Ensemble probabilities must be finite values in [0, 1].")
    return np.std(probabilities, axis=1, ddof=1)
