"""
Run all simulations sequentially.

Each simulation can also be run independently:
    python sim_channel_estimation.py
    python sim_ber_vs_snr.py
    python sim_estimation_mse.py
"""

import sim_channel_estimation
import sim_ber_vs_snr
import sim_estimation_mse


def main():
    print("=" * 70)
    print("Running all simulations")
    print("=" * 70)

    # 1. Reference scenario, noiseless
    print("\n" + "-" * 60)
    results_est = sim_channel_estimation.simulate()
    sim_channel_estimation.plot(results_est)
    sim_channel_estimation.save_csv(results_est)

    # 2. BER vs SNR for each guard mode
    print("\n" + "-" * 60)
    results_ber = sim_ber_vs_snr.simulate(n_mc=200)
    sim_ber_vs_snr.plot(results_ber)
    sim_ber_vs_snr.save_csv(results_ber)

    # 3. Estimation MSE vs SNR for each interpolator
    print("\n" + "-" * 60)
    results_mse = sim_estimation_mse.simulate(n_mc=100)
    sim_estimation_mse.plot(results_mse)
    sim_estimation_mse.save_csv(results_mse)

    print("\n" + "=" * 70)
    print("All simulations complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
