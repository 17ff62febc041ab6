"""
Pilot estimate MSE vs SNR for each interpolation strategy.

The reference for each trial is the noiseless estimate of the same frame,
so the curves isolate the effect of noise on the pilot ratios and on the
interpolated grid.
"""
import os
import csv

import numpy as np
import matplotlib.pyplot as plt

from estimator import INTERPOLATORS, estimate_channel
from otfs import OTFSModulator
from sim_common import (
    ieee_setup, save_figure, run_trial, trial_generators, OTFS_PARAMS, PATHS,
    PILOTS, SNR_DB_RANGE, SEED,
)


def simulate(snr_dB_arr=SNR_DB_RANGE, n_mc=100, interpolators=None,
             params=OTFS_PARAMS):
    if interpolators is None:
        interpolators = sorted(INTERPOLATORS)
    snr_dB_arr = np.asarray(snr_dB_arr, dtype=float)
    modulator = OTFSModulator(params)

    print(f"Estimation MSE vs SNR ({', '.join(interpolators)}), MC={n_mc}")

    results = {'snr_dB': snr_dB_arr}
    for name in interpolators:
        mse_pilot = np.zeros(len(snr_dB_arr))
        mse_grid = np.zeros(len(snr_dB_arr))
        for idx, snr in enumerate(snr_dB_arr):
            acc_p, acc_g = 0.0, 0.0
            for rng in trial_generators(SEED + idx, n_mc):
                rec = run_trial(snr, rng, params=params, paths=PATHS,
                                pilots=PILOTS, interpolator=name)
                ref = estimate_channel(modulator.demodulate(rec.rx_channel),
                                       PILOTS, name, M=params.M, N=params.N)
                acc_p += np.mean(np.abs(rec.estimate.per_pilot - ref.per_pilot)**2)
                acc_g += np.mean(np.abs(rec.estimate.grid - ref.grid)**2)
            mse_pilot[idx] = acc_p / n_mc
            mse_grid[idx] = acc_g / n_mc
            print(f"  {name:>8} SNR={snr:5.1f}dB: pilot MSE={mse_pilot[idx]:.3e}, "
                  f"grid MSE={mse_grid[idx]:.3e}")
        results[f'{name}_pilot'] = mse_pilot
        results[f'{name}_grid'] = mse_grid

    return results


def plot(results, out_dir='.'):
    ieee_setup()
    fig, ax = plt.subplots(figsize=(3.5, 2.8))
    snr = results['snr_dB']
    colors = ['#1f77b4', '#ff7f0e', '#2ca02c', '#d62728']

    names = sorted({k.rsplit('_', 1)[0] for k in results if k != 'snr_dB'})
    for color, name in zip(colors, names):
        ax.semilogy(snr, np.maximum(results[f'{name}_pilot'], 1e-12),
                    'o-', color=color, lw=1.0, ms=3, label=f'{name} (pilots)')
        ax.semilogy(snr, np.maximum(results[f'{name}_grid'], 1e-12),
                    's--', color=color, lw=0.8, ms=3, label=f'{name} (grid)')

    ax.set_xlabel('SNR (dB)')
    ax.set_ylabel('Estimation MSE')
    ax.legend(fontsize=6, loc='upper right', framealpha=0.9)
    ax.grid(True, which='both', ls='--', alpha=0.3)

    save_figure(fig, 'estimation_mse', out_dir)


def save_csv(results, out_dir='.'):
    keys = [k for k in results if k != 'snr_dB']
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, 'estimation_mse.csv')
    with open(path, 'w', newline='') as f:
        w = csv.writer(f)
        w.writerow(['snr_dB'] + keys)
        for i in range(len(results['snr_dB'])):
            row = [f"{results['snr_dB'][i]:.2f}"]
            for k in keys:
                row.append(f"{results[k][i]:.6e}")
            w.writerow(row)
    print(f"Saved: {path}")


if __name__ == "__main__":
    results = simulate(n_mc=100)
    plot(results)
    save_csv(results)
