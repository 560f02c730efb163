import os
import json
import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns

logger = logging.getLogger(__name__)

HISTOGRAM_BINS = 20


@dataclass
class AnalysisReport:
    """Everything one analysis run produced, ready for writing or plotting."""
    profile: object
    verdicts: dict
    summaries: dict
    global_test: object = None
    skipped_summaries: dict = field(default_factory=dict)
    category_labels: dict = field(default_factory=dict)
    notes: tuple = ()
    plot_data: dict = field(default_factory=dict)

    @property
    def skipped(self):
        """Every skipped item as (stage, target, item, reason) rows."""
        rows = []
        for target, verdict in self.verdicts.items():
            for covariate, reason in verdict.skipped_covariates.items():
                rows.append(('classification', target, covariate, reason))
        for column, reason in self.skipped_summaries.items():
            rows.append(('descriptive', column, column, reason))
        return rows


# --- Assembly ---

def build_plot_data(table, summary_columns, bins=HISTOGRAM_BINS):
    """Plot-ready arrays: the missingness matrix and per-column histograms."""
    mask = table.missing_mask()
    histograms = {}
    for column in summary_columns:
        values = table.values(column)
        values = values[~np.isnan(values)]
        if len(values) == 0:
            continue
        counts, edges = np.histogram(values, bins=bins)
        histograms[column] = {'counts': counts.tolist(), 'edges': edges.tolist()}
    return {'missing_matrix': mask.astype(int), 'histograms': histograms}


def build_report(table, profile, verdicts, summaries, skipped_summaries=None, summary_columns=()):
    global_test = next((v.global_test for v in verdicts.values()), None)
    labels = table.category_codes.labels if table.category_codes is not None else {}
    return AnalysisReport(
        profile=profile,
        verdicts=verdicts,
        summaries=summaries,
        global_test=global_test,
        skipped_summaries=dict(skipped_summaries or {}),
        category_labels=labels,
        notes=table.notes,
        plot_data=build_plot_data(table, summary_columns),
    )


# --- Tables ---

def verdicts_frame(report):
    rows = []
    for target, verdict in report.verdicts.items():
        rows.append({
            'column': target,
            'mechanism': verdict.mechanism.value,
            'p_global': verdict.p_global,
            'alpha': verdict.alpha,
            'missing_count': verdict.missing_count,
            'significant_covariates': ';'.join(verdict.significant_covariates),
            'n_skipped_covariates': len(verdict.skipped_covariates),
        })
    return pd.DataFrame(rows)


def covariate_pvalues_frame(report):
    rows = []
    for target, verdict in report.verdicts.items():
        for covariate, p_value in verdict.covariate_pvalues.items():
            rows.append({'target': target, 'covariate': covariate, 'p_value': p_value,
                         'skipped': covariate in verdict.skipped_covariates})
    return pd.DataFrame(rows, columns=['target', 'covariate', 'p_value', 'skipped'])


def summaries_frame(report):
    rows = [{'column': column, **summary.as_dict()} for column, summary in report.summaries.items()]
    return pd.DataFrame(rows)


def skipped_frame(report):
    return pd.DataFrame(report.skipped, columns=['stage', 'target', 'item', 'reason'])


def report_to_dict(report):
    profile = report.profile
    return {
        'n_records': profile.n_records,
        'missing_counts': {c: int(n) for c, n in profile.missing_counts.items()},
        'missing_rates': {c: float(r) for c, r in profile.missing_rates.items()},
        'patterns': {str(k): int(v) for k, v in profile.pattern_counts.items()},
        'global_test': None if report.global_test is None else {
            'statistic': report.global_test.statistic,
            'dof': report.global_test.dof,
            'p_value': report.global_test.p_value,
            'n_patterns': report.global_test.n_patterns,
        },
        'verdicts': {
            target: {
                'mechanism': v.mechanism.value,
                'p_global': v.p_global,
                'covariate_pvalues': {c: (None if np.isnan(p) else p) for c, p in v.covariate_pvalues.items()},
                'skipped_covariates': v.skipped_covariates,
            }
            for target, v in report.verdicts.items()
        },
        'summaries': {c: s.as_dict() for c, s in report.summaries.items()},
        'skipped': [dict(zip(['stage', 'target', 'item', 'reason'], row)) for row in report.skipped],
        'category_labels': {str(k): v for k, v in report.category_labels.items()},
        'notes': list(report.notes),
    }


# --- Figures ---

def plot_missingness_heatmap(report, figures_dir):
    matrix = report.plot_data.get('missing_matrix')
    if matrix is None or matrix.empty:
        logger.warning("No missingness matrix to plot.")
        return None
    plt.figure(figsize=(8, 6))
    sns.heatmap(matrix.reset_index(drop=True), cbar=False, cmap='viridis', yticklabels=False)
    plt.title('Missing values by record (1 = missing)')
    plt.xlabel('Column')
    plt.ylabel('Record')
    plt.tight_layout()
    path = os.path.join(figures_dir, 'missingness_heatmap.png')
    plt.savefig(path, dpi=150)
    plt.close()
    return path


def plot_histograms(report, figures_dir):
    paths = []
    for column, hist in report.plot_data.get('histograms', {}).items():
        edges = np.asarray(hist['edges'])
        plt.figure(figsize=(7, 5))
        plt.bar(edges[:-1], hist['counts'], width=np.diff(edges), align='edge', edgecolor='black')
        summary = report.summaries.get(column)
        if summary is not None:
            plt.axvline(summary.mean, color='r', linestyle='--', linewidth=1, label=f'Mean {summary.mean:.3g}')
            plt.legend(loc='upper right')
        plt.title(f'Distribution of {column} (complete cases)')
        plt.xlabel(column)
        plt.ylabel('Count')
        plt.tight_layout()
        path = os.path.join(figures_dir, f'hist_{column}.png')
        plt.savefig(path, dpi=150)
        plt.close()
        paths.append(path)
    return paths


# --- Sink ---

def write_report(report, output_dir='results/report/', make_plots=True):
    """
    Write report tables, a JSON digest and optional figures to ``output_dir``.

    Returns:
    --------
    dict : Artifact name -> written path
    """
    os.makedirs(output_dir, exist_ok=True)
    written = {}

    tables = {
        'missingness_profile.csv': report.profile.to_frame().rename_axis('column').reset_index(),
        'missingness_patterns.csv': report.profile.pattern_counts.rename_axis('pattern').reset_index(name='count'),
        'verdicts.csv': verdicts_frame(report),
        'covariate_pvalues.csv': covariate_pvalues_frame(report),
        'descriptive_summary.csv': summaries_frame(report),
        'skipped.csv': skipped_frame(report),
    }
    for name, frame in tables.items():
        path = os.path.join(output_dir, name)
        frame.to_csv(path, index=False)
        written[name] = path

    json_path = os.path.join(output_dir, 'report.json')
    with open(json_path, 'w') as f:
        json.dump(report_to_dict(report), f, indent=2)
    written['report.json'] = json_path

    if make_plots:
        figures_dir = os.path.join(output_dir, 'figures')
        os.makedirs(figures_dir, exist_ok=True)
        logger.info("Generating missingness heatmap...")
        heatmap = plot_missingness_heatmap(report, figures_dir)
        if heatmap:
            written['missingness_heatmap.png'] = heatmap
        logger.info("Generating histograms...")
        for path in plot_histograms(report, figures_dir):
            written[os.path.basename(path)] = path

    logger.info(f"Saved report to {output_dir}")
    return written
