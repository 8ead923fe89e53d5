from tallstack_installer import main

if __name__ == "__main__":
    main()
