from pathlib import Path

from quake_simulator.config import load_simulation_config
from quake_simulator.core.engine import run_simulation
from quake_simulator.core.events import detect_slip_events, event_statistics


def main():
    project_root = Path(__file__).resolve().parents[1]
    cfg_path = project_root / "configs" / "default.yml"

    config = load_simulation_config(cfg_path)
    df = run_simulation(config, frames=1200)

    events = detect_slip_events(df, "E_kin", threshold=1e-3)
    print(events.to_string(index=False))

    stats = event_statistics(events)
    print(f"{stats['n_events']} slip events, max_x = {df['Max_x'].iloc[-1]:.3f}")


if __name__ == "__main__":
    main()
