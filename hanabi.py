import random
import sys
import time
from typing import Any

import numpy

from conventions import CONVENTIONS
from game import Game
from metrics.post_move import BeliefEntropyMetric
from utils import NullStream

random.seed(123)


def main(args):
    if not args:
        args = ["h-group"] * 3
    for a in args:
        if a not in CONVENTIONS:
            raise ValueError(f"Unknown convention: {a}")

    n = 100

    out: Any = NullStream()
    if n < 3:
        out = sys.stdout

    pts = []
    entropies = []
    times = []
    for i in list(range(n)):
        if (i + 1) % 100 == 0:
            print("Starting game", i + 1)
        random.seed(i + 1)
        metric = BeliefEntropyMetric()
        g = Game(args, out, metrics=[metric])
        try:
            t0 = time.time()
            pts.append(g.run())
            times.append(time.time() - t0)
            entropies.append(metric.final_value)
            if (i + 1) % 100 == 0:
                print("score", pts[-1])
        except Exception:
            import traceback

            traceback.print_exc()
    if n < 10:
        print(pts)
    if not pts:
        print("no games finished")
        return

    print("average:", numpy.mean(pts))
    if len(pts) > 1:
        print("stddev:", numpy.std(pts, ddof=1))
    print("range", min(pts), max(pts))
    print("average belief entropy:", numpy.mean(entropies))
    print("average time per game:", numpy.mean(times))


if __name__ == "__main__":
    main(sys.argv[1:])
