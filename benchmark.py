import time
import timeit
from dataclasses import replace
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from argon import Mode, Parameters, default_parameters, hash_with_params

PASSWORD = b"password"


def bench(repeats=10, **kwargs):
    """
    Time hash_with_params while sweeping one parameter.

    Keyword arguments are Parameters fields. Exactly one of them carries the
    suffix _range and holds the values to sweep, e.g.
    bench(memory_cost_range=[8, 16, 32], iterations=1, parallelism=1).
    Missing fields are taken from default_parameters().

    :return: mean and standard deviation in seconds, one entry per swept value
    """
    swept = [name for name in kwargs if name.endswith("_range")]
    if len(swept) != 1:
        raise ValueError(f"exactly one *_range argument expected, got {swept}")

    range_name = swept[0]
    val_name = range_name[:-6]
    values = list(kwargs.pop(range_name))
    base = replace(default_parameters(), **kwargs)

    means = []
    stds = []
    for i, v in enumerate(values):
        avg = np.mean(means) if means else None
        print(f"\r{val_name}: {v} [{i}/{len(values)}] avg. {avg}", sep=" ", end="", flush=True)

        params = replace(base, **{val_name: v})
        times = timeit.repeat(lambda: hash_with_params(PASSWORD, params), number=1, repeat=repeats)
        means.append(np.mean(times))
        stds.append(np.std(times))
    print()

    return np.array(means), np.array(stds)


def calibrate(target_seconds=0.5,
              iterations=1,
              parallelism=None,
              mode=Mode.ARGON2ID,
              start_memory_cost=1024,
              max_memory_cost=4 * 1024 * 1024,
              repeats=3) -> Parameters:
    """
    Find a memory cost whose mean hashing time reaches target_seconds.

    The memory cost starts at start_memory_cost and doubles until the
    target is reached or max_memory_cost would be exceeded.
    """
    params = replace(default_parameters(), iterations=iterations, mode=mode, memory_cost=start_memory_cost)
    if parallelism is not None:
        params = replace(params, parallelism=parallelism)

    while True:
        times = timeit.repeat(lambda: hash_with_params(PASSWORD, params), number=1, repeat=repeats)
        mean = np.mean(times)
        print(f"m={params.memory_cost} KiB avg. {mean:.4f}s")
        if mean >= target_seconds or params.memory_cost * 2 > max_memory_cost:
            return params
        params = replace(params, memory_cost=params.memory_cost * 2)


def plot_time_results(values, timings, labels, value_label, title, out_dir="plots", show=False):
    for v, (mean, std), l in zip(values, timings, labels):
        plt.errorbar(v, mean, yerr=std, label=l, capsize=3)
    plt.xlabel(value_label)
    plt.xticks(values[0])
    plt.ylabel("time [s]")
    plt.title(title)
    plt.legend()

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{time.strftime('%Y%m%d-%H%M%S')}.png"
    plt.savefig(path)
    if show:
        plt.show()
    plt.clf()
    return path


def memory_bench():
    memory_range = [2 ** i for i in range(10, 18)]

    res = [bench(repeats=5, memory_cost_range=memory_range, iterations=1, parallelism=p) for p in (1, 2, 4)]

    plot_time_results(
        [memory_range] * 3,
        res,
        ["p=1", "p=2", "p=4"],
        "m [KiB]",
        f"argon2id hashing times for different memory cost (avg over {5} repeats)"
    )


def iterations_bench():
    t_range = list(range(1, 11))

    res_id = bench(repeats=5, iterations_range=t_range, memory_cost=16 * 1024, mode=Mode.ARGON2ID)
    res_i = bench(repeats=5, iterations_range=t_range, memory_cost=16 * 1024, mode=Mode.ARGON2I)

    plot_time_results(
        [t_range, t_range],
        [res_id, res_i],
        ["argon2id", "argon2i"],
        "t",
        f"hashing times for different t at m=16 MiB (avg over {5} repeats)"
    )


def parallelism_bench():
    p_range = [1, 2, 4, 8]

    res = bench(repeats=5, parallelism_range=p_range, memory_cost=64 * 1024, iterations=1)

    plot_time_results(
        [p_range],
        [res],
        ["argon2id m=64 MiB"],
        "p",
        f"argon2id hashing times for different parallelism (avg over {5} repeats)"
    )


if __name__ == "__main__":
    memory_bench()
    iterations_bench()
    parallelism_bench()
    print(calibrate())
