from decimal import Decimal
from typing import Iterable, Tuple, Optional, Dict, Any, Sequence
import matplotlib.pyplot as plt

from ..engine.models import TimelinePoint


def plot_tax_curve(
    points: Iterable[Tuple[int, Decimal]],
    out_path: str,
    annotations: Optional[Dict[str, Any]] = None,
):
    """
    points: iterable of (gross income:int, total tax:Decimal)
    annotations (optional):
      {
        "income": float|int,        # marks the profile's own income
        "total": float|int,
        "label": str,
        "title": str,
      }
    """
    points = list(points)
    xs = [x for x, _ in points]
    ys = [float(y) for _, y in points]

    plt.figure()
    plt.plot(xs, ys)
    plt.xlabel("Gross income (CHF)")
    plt.ylabel("Total tax (CHF)")
    plt.title((annotations or {}).get("title", "Tax curve"))

    if annotations and annotations.get("income") is not None:
        ax = plt.gca()
        inc = float(annotations["income"])
        ax.axvline(inc, linestyle="--")
        if annotations.get("total") is not None:
            tot = float(annotations["total"])
            ax.scatter([inc], [tot])
            ax.annotate(
                annotations.get("label", "Current income"),
                xy=(inc, tot),
                xytext=(10, 12),
                textcoords="offset points",
                arrowprops=dict(arrowstyle="->", lw=0.8),
            )

    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close()


def plot_retirement_timeline(
    timeline: Sequence[TimelinePoint],
    out_path: str,
    annual_salary: Optional[Decimal] = None,
):
    """Stacked bars per age: salary before retirement, AVS / LPP / 3rd pillar after."""
    labels = [f"{p.age}" for p in timeline]
    series = [
        ("Salary", [float(p.salary) for p in timeline]),
        ("AVS", [float(p.avs) for p in timeline]),
        ("LPP", [float(p.lpp) for p in timeline]),
        ("3rd pillar", [float(p.third_pillar) for p in timeline]),
    ]

    plt.figure()
    ax = plt.gca()
    bottom = [0.0] * len(timeline)
    for name, values in series:
        ax.bar(labels, values, bottom=bottom, label=name)
        bottom = [b + v for b, v in zip(bottom, values)]

    if annual_salary:
        ax.axhline(float(annual_salary), linestyle="--", lw=1.0, label="Current salary")

    ax.set_xlabel("Age")
    ax.set_ylabel("Annual income (CHF)")
    ax.set_title("Retirement income projection")
    ax.legend()

    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close()
