from .main import main

if __name__ == "__main__":
    # Run the OpenAI-compatible relay (HOST/PORT from settings, 0.0.0.0:8787 by default)
    main()
