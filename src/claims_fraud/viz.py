import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd


def plot_error_curve(curve: pd.DataFrame):
    """Error against number of trees, one line per error column."""
    plt.style.use('seaborn-v0_8-darkgrid')

    long = curve.melt(id_vars='n_trees', var_name='error_type', value_name='error')
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.lineplot(data=long, x='n_trees', y='error', hue='error_type', ax=ax)

    ax.set_xlabel('Number of trees')
    ax.set_ylabel('Misclassification rate')
    ax.set_title('Error vs. Ensemble Size', fontweight='bold')

    fig.tight_layout()
    return fig


def plot_feature_importance(importances: pd.Series, top_n: int = 20):
    plt.style.use('seaborn-v0_8-darkgrid')

    top = importances.sort_values(ascending=False).head(top_n)
    fig, ax = plt.subplots(figsize=(10, max(4, 0.35 * len(top))))
    sns.barplot(x=top.values, y=top.index, color='steelblue', ax=ax)

    ax.set_xlabel('Mean decrease in Gini impurity')
    ax.set_ylabel('')
    ax.set_title('Feature Importance', fontweight='bold')
    ax.grid(True, alpha=0.3, axis='x')

    fig.tight_layout()
    return fig
