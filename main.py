from src.cervical_risk.pipeline import PipelineRunner


def main() -> None:
    """Run the cervical cancer risk-factor model comparison."""
    runner = PipelineRunner("config/default.yaml")
    runner.run()


if __name__ == "__main__":
    main()
