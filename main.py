# main.py
"""
Main entry point for the particle morph animation.

This script orchestrates the whole lifecycle:
1. Loads configuration from `config.json` (or --config).
2. Initializes the logging system.
3. Opens the display and builds the particle field and target shapes.
4. Runs the frame loop until the window is closed.
5. Handles clean shutdown.
"""
import argparse
import logging
from utils import setup_logging, load_config
import cProfile
import pstats
import io

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Particles morphing between a tree and text.")
    parser.add_argument('--config', default='config.json', help="Path to the JSON configuration file.")
    return parser.parse_args(argv)

def main(argv=None):
    """
    The main function to run the animation.
    """
    args = parse_args(argv)

    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"FATAL: Could not load {args.config}. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Particle Morph Starting ---")

    run_params = config.get('run_control', {})

    import pygame
    from simulation import Simulation
    from visualization import Visualizer

    # --- Component Initialization ---
    # 1. The visualizer opens the window and determines the viewport.
    visualizer = Visualizer(config.get('visualization', {}))

    # 2. Targets and particles are built for that viewport.
    sim = Simulation(config, visualizer.width, visualizer.height)

    profiler = cProfile.Profile() if run_params.get('profile', False) else None

    log_throttle = run_params.get('log_throttle_steps', 300)
    max_steps = run_params.get('max_steps', 0)  # 0 runs until the window closes

    running = True
    step_num = 0

    if profiler:
        profiler.enable()
    while running:
        now = pygame.time.get_ticks() / 1000.0
        ctx = sim.step(now)
        step_num += 1

        if not visualizer.draw(sim, ctx):
            running = False

        # Hot loops must throttle logs
        if step_num % log_throttle == 0:
            logging.info(f"Frame {step_num} | state '{ctx.state}'")
            logging.debug(
                f"Frame {step_num} | mean distance to target: {sim.mean_target_distance():.2f}px, "
                f"visible: {int(sim.field.visible.sum())}/{sim.field.particle_count}, "
                f"angle: {ctx.angle:.3f} rad"
            )

        if max_steps and step_num >= max_steps:
            logging.info(f"Reached max_steps ({max_steps}). Stopping animation.")
            running = False
    if profiler:
        profiler.disable()

    visualizer.close()
    logging.info("Frame loop finished.")

    if profiler:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20)
        logging.info(f"\n{s.getvalue()}")

    logging.info("--- Particle Morph Shutting Down ---")


if __name__ == "__main__":
    main()
