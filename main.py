from vcpu_inventory.cli.app import cli


def main():
    """Entry point for the vcpu-inventory CLI. Delegates to vcpu_inventory.cli.app:cli."""
    cli()


if __name__ == "__main__":
    main()
