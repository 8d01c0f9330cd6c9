import argparse
import os

import matplotlib.pyplot as plt
import numpy as np

from cfs import fixed_point
from cfs.converter import Converter
from cfs.membership import PiecewiseLinear
from cfs.variable import SugenoVariable
from fis.parser import parse_fis


def encoded_points(function, range_min, range_max, tsize=8):
    """
    Decodes the CFS data of a membership function back into (x, y) points.

    Knee based shapes give their four knees, tabulated shapes give one point
    per stored sample.
    """
    cfs_data = function.to_cfs(range_min, range_max, {"tsize": tsize})
    # First word is the shape type.
    words = [(high << 8) | low for high, low in zip(cfs_data[0::2], cfs_data[1::2])][1:]

    if isinstance(function, PiecewiseLinear):
        x = [fixed_point.dequantize(w, range_min, range_max) for w in words]
        y = [0.0, 1.0, 1.0, 0.0]
    else:
        x = np.linspace(range_min, range_max, len(words))
        y = [fixed_point.from_fixed(w) for w in words]
    return np.asarray(x, dtype=float), np.asarray(y, dtype=float)


def plot_membership_functions(
    variable, title, tsize=8, save=False, output_dir="plots", show=True
):
    """
    Plot the membership functions of a variable over its range.
    Overlay the points stored in the CFS data as dots.
    Args:
        variable: Input or Mamdani output variable
        title (str): Title of the plot
        tsize (int): log2 of the number of tabulated samples
        save (bool): Whether to save the plot as a PNG
        output_dir (str): Directory to save the plot
        show (bool): Whether to open a window
    Returns:
        str or None: Path of the saved PNG
    """
    fig = plt.figure(figsize=(8, 4))
    x = np.linspace(variable.range_min, variable.range_max, 501)
    for position, function in enumerate(variable.membership_functions, 1):
        label = function.name or f"MF{position}"
        lines = plt.plot(x, function.evaluate_many(x), label=label)

        px, py = encoded_points(function, variable.range_min, variable.range_max, tsize)
        plt.scatter(px, py, color=lines[0].get_color(), s=12, marker="o", zorder=10)

    plt.title(f"Membership Functions – {title}")
    plt.xlabel("Value")
    plt.ylabel("Membership Degree")
    plt.grid(True)
    plt.legend()
    plt.tight_layout()

    filename = None
    if save:
        os.makedirs(output_dir, exist_ok=True)
        filename = os.path.join(output_dir, f"{title.lower().replace(' ', '_')}_membership_functions.png")
        plt.savefig(filename)
        print(f"Saved plot to: {filename}")

    if show:
        plt.show()
    plt.close(fig)
    return filename


def main():
    parser = argparse.ArgumentParser(
        description="Plot the membership functions of a FIS model against their CFS encoding."
    )
    parser.add_argument("fis", help="Path of the .fis model.")
    parser.add_argument("--tsize", type=int, default=8, help="log2 of the tabulated samples.")
    parser.add_argument(
        "--save",
        action="store_true",
        help="Save plots as PNG files in the 'plots/' directory.",
    )
    args = parser.parse_args()

    converter = Converter(parse_fis(args.fis))
    for variable in converter.inputs:
        plot_membership_functions(variable, f"Input {variable.index}", args.tsize, save=args.save)
    for variable in converter.outputs:
        if isinstance(variable, SugenoVariable):
            print(f"Output {variable.index} is a Sugeno output, nothing to plot.")
            continue
        plot_membership_functions(variable, f"Output {variable.index}", args.tsize, save=args.save)


if __name__ == "__main__":
    main()
