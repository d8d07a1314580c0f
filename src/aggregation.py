"""
aggregation.py

Per-contributor and per-year commit counts, and the summary rows that are
appended to a CSV once a scan is complete.
"""

from dataclasses import dataclass, field, replace

import pandas as pd

from src.errors import ArgumentError, FilesystemError
from src.projection import author_login, dig


@dataclass(frozen=True)
class AggregationState:
    """Running count per contributor, in first-seen order."""
    counts: dict = field(default_factory=dict)
    node_ids: dict = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def tally(state: AggregationState, contributors) -> AggregationState:
    """
    Return a new state with one more count for every contributor given.
    """
    counts = dict(state.counts)
    for contributor in contributors:
        counts[contributor] = counts.get(contributor, 0) + 1
    return replace(state, counts=counts)


def record_node_ids(state: AggregationState, commits) -> AggregationState:
    """
    Remember the GitHub node id of every linked commit author. Commits whose
    author account is missing have no node id and are left out.
    """
    node_ids = dict(state.node_ids)
    for commit in commits:
        login = dig(commit, 'author', 'login')
        if login:
            node_ids[login] = dig(commit, 'author', 'node_id')
    return replace(state, node_ids=node_ids)


def node_id_rows(state: AggregationState) -> list:
    return [[login, node_id] for login, node_id in state.node_ids.items()]


def contributor_summary_rows(state: AggregationState, label: str = 'Commits') -> list:
    """
    One `[contributor, ' ', count, '<pct>%']` row per contributor followed by
    a `['Total %', <pct sum>, 'Total <label>', <count>]` row.
    """
    total = state.total
    rows = []
    total_percent = 0.0
    for contributor, count in state.counts.items():
        percent = round(count / total * 100.0, 2) if total else 0.0
        total_percent += percent
        rows.append([contributor, ' ', count, f"{percent:.2f}%"])
    rows.append(['Total %', round(total_percent, 2), f"Total {label}", total])
    return rows


def tally_csv_column(path: str, column: str,
                     state: AggregationState = None) -> AggregationState:
    """
    Count the values of one column of an exported CSV, e.g. the committer
    login column of a commit export.
    """
    try:
        df = pd.read_csv(path, usecols=[column], keep_default_na=False)
    except OSError as e:
        raise FilesystemError(f"Could not read {path}: {e}") from e
    except ValueError as e:
        raise ArgumentError(f"{path} has no column {column!r}") from e
    return tally(state or AggregationState(), df[column].astype(str))


def pull_requests_by_contributor(issues, state: AggregationState = None) -> AggregationState:
    """Count issues that are really pull requests, per opening user."""
    return tally(state or AggregationState(),
                 (dig(i, 'user', 'login') for i in issues if i.get('pull_request')))


def commits_per_year(commits) -> pd.DataFrame:
    """
    Commit counts per committer-date year and author login.

    Returns a DataFrame with columns year, author, commits, sorted by year
    and then by descending count.
    """
    rows = []
    for commit in commits:
        committed = dig(commit, 'commit', 'committer', 'date')
        if not committed:
            continue
        rows.append({'year': committed[:4], 'author': author_login(commit)})

    df = pd.DataFrame(rows, columns=['year', 'author'])
    if df.empty:
        return pd.DataFrame(columns=['year', 'author', 'commits'])

    df['year'] = df['year'].astype(int)
    df['author'] = df['author'].fillna('unknown')
    summary = (df.groupby(['year', 'author']).size()
               .reset_index(name='commits')
               .sort_values(['year', 'commits'], ascending=[True, False])
               .reset_index(drop=True))
    return summary


def yearly_totals(summary: pd.DataFrame) -> pd.Series:
    """Total commits per year from a commits_per_year frame."""
    return summary.groupby('year')['commits'].sum()
