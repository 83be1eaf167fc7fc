"""
CPU backend for two-sample permutation tests.

CPUTwoSampleBackend: builds the reference set of partitions, evaluates
the statistic on each, and compares the observed grouping against the
permutation distribution. Vector statistics go through NPC.
"""

from __future__ import annotations

import numpy as np

from pyflip.core.exceptions import DimensionError, NumericalError
from pyflip.core.result import Result
from pyflip.core.compute.timing import Timer
from pyflip.permutation._common import EXHAUSTIVE, TwoSampleParams
from pyflip.permutation._evaluate import evaluate_statistic
from pyflip.permutation._npc import combine_pvalues
from pyflip.permutation._pvalue import pvalue_from_distribution
from pyflip.permutation._sampler import count_partitions, generate_partitions
from pyflip.permutation.design import TwoSampleDesign


class CPUTwoSampleBackend:
    """
    CPU backend for two-sample permutation testing.

    The observed grouping is row 0 of the partition matrix and is counted
    in its own reference set: p = count / B with B including it.
    """

    @property
    def name(self) -> str:
        return 'cpu_permutation'

    def solve(self, design: TwoSampleDesign) -> Result[TwoSampleParams]:
        """Run the permutation test and return Result[TwoSampleParams]."""
        timer = Timer()
        timer.start()

        n1 = design.n1
        n = design.n
        n_partitions = count_partitions(n, n1)

        with timer.section('sampling'):
            if design.partitions is not None:
                partitions = design.partitions
                exhaustive = design.partitions_exhaustive
            else:
                partitions, exhaustive = generate_partitions(
                    n, n1, design.B,
                    seed=design.seed,
                    replace=design.replace,
                    max_exhaustive=design.max_exhaustive,
                )
        B = partitions.shape[0]

        with timer.section('evaluation'):
            perm_stats = evaluate_statistic(
                design.statistic, design.pooled, partitions,
                n_jobs=design.n_jobs,
            )
        nan_rows = np.flatnonzero(np.isnan(perm_stats).any(axis=1))
        if nan_rows.size:
            raise NumericalError(
                f"statistic returned NaN on permutation {nan_rows[0]} "
                f"({nan_rows.size} of {B} partitions); NaN values cannot "
                f"be ranked"
            )
        observed = perm_stats[0].copy()
        k = perm_stats.shape[1]

        alternatives = design.alternative
        if len(alternatives) == 1:
            alternatives = alternatives * k
        elif len(alternatives) != k:
            raise DimensionError(
                f"got {len(alternatives)} alternatives for a statistic "
                f"with {k} components"
            )

        # The Phipson-Smyth correction only applies to i.i.d. draws.
        corrected = (not exhaustive) and design.replace

        partial = None
        combined = None
        with timer.section('p_value'):
            if k == 1:
                p_value = pvalue_from_distribution(
                    perm_stats[:, 0],
                    observed[0],
                    alternatives[0],
                    two_tail_rule=design.two_tail_rule,
                    formula=design.pvalue_formula,
                    n_partitions=n_partitions,
                    corrected=corrected,
                )
            else:
                p_value, partial_matrix, combined = combine_pvalues(
                    perm_stats,
                    alternatives,
                    combine=design.combine,
                    two_tail_rule=design.two_tail_rule,
                    formula=design.pvalue_formula,
                    n_partitions=n_partitions,
                    corrected=corrected,
                )
                partial = partial_matrix[0].copy()

        timer.stop()

        warnings_list: list[str] = []
        if design.B != EXHAUSTIVE and exhaustive and design.B > n_partitions:
            warnings_list.append(
                f"B={design.B} exceeds the {n_partitions} distinct "
                f"partitions; enumerated all of them instead"
            )

        params = TwoSampleParams(
            observed_stat=observed,
            perm_stats=perm_stats,
            p_value=float(p_value),
            B=B,
            alternative=alternatives,
            exhaustive=exhaustive,
            n_partitions=n_partitions,
            partial_p_values=partial,
            combined_stats=combined,
        )

        combine = design.combine
        return Result(
            params=params,
            info={
                'n1': n1,
                'n2': design.n2,
                'k': k,
                'exhaustive': exhaustive,
                'n_partitions': n_partitions,
                'alternative': alternatives,
                'pvalue_formula': design.pvalue_formula,
                'combine': combine if isinstance(combine, str) else getattr(
                    combine, '__name__', 'custom'),
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )
