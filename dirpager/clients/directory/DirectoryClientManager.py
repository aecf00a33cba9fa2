from dirpager.helper.HelperConfig import HelperConfig
from dirpager.clients.directory.DirectoryClientInterface import DirectoryClientInterface


class DirectoryClientManager:
    """
    Manager class to handle multiple directory clients based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.clients = self._initialize_clients()

    def _get_engines_from_env(self) -> list[str]:
        """
        Reads the list of directory engines from ENV configuration, e.g. DIRECTORY_ENGINES="[ldap]".

        Returns:
            list[str]: A list of capitalized engine names.

        Raises:
            ValueError: If no directory engines are specified in the configuration.
        """
        engines = self.helper_config.get_list_val("DIRECTORY_ENGINES")
        if not engines:
            raise ValueError("No directory engines specified in configuration.")
        return [engine.strip().lower().capitalize() for engine in engines]

    def _initialize_clients(self) -> list[DirectoryClientInterface]:
        """
        Initializes directory clients based on the engines specified in the configuration.

        Returns:
            list[DirectoryClientInterface]: The instantiated clients, not yet booted.

        Raises:
            ValueError: If an engine is not supported.
        """
        clients = []
        for engine in self._get_engines_from_env():
            className = f"DirectoryClient{engine}"
            # engines live in dirpager.clients.directory.{engine}.DirectoryClient{Engine}
            try:
                module = __import__(
                    f"dirpager.clients.directory.{engine.lower()}.{className}",
                    fromlist=[className],
                )
                client_class = getattr(module, className)
            except (ImportError, AttributeError) as e:
                raise ValueError(f"Unsupported directory engine specified: '{engine}'. Error: {e}")
            clients.append(client_class(helper_config=self.helper_config))
            self.logging.debug("Instantiated directory client for engine: %s", engine)
        return clients

    def get_clients(self) -> list[DirectoryClientInterface]:
        """
        Returns the list of instantiated directory clients.

        Returns:
            list[DirectoryClientInterface]: The list of directory client instances.
        """
        return self.clients
