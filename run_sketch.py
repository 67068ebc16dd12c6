import hydra
from omegaconf import DictConfig
import pyrootutils

# project root setup
root = pyrootutils.setup_root(__file__, dotenv=True, pythonpath=True)

from livesketch.render import render_single, watch


@hydra.main(version_base=None, config_path="config", config_name="run")
def main(cfg: DictConfig) -> None:

    # Instantiate the session and canvas from config
    session = hydra.utils.instantiate(cfg.session)
    canvas = hydra.utils.instantiate(cfg.canvas)
    print(f"✅ Session ready (mode '{cfg.mode}', sketch '{cfg.sketch_file}')")

    # Render once, or keep re-rendering on every edit.
    if cfg.mode == "watch":
        watch(session, canvas, cfg.sketch_file, cfg.output,
              interval=cfg.poll_interval, history_file=cfg.history_file)
    elif cfg.mode == "single":
        render_single(session, canvas, cfg.sketch_file, cfg.output, frames=cfg.frames, fps=cfg.fps)
    else:
        raise ValueError(f"Unknown mode: {cfg.mode}")


if __name__ == "__main__":
    main()
