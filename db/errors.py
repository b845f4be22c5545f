from __future__ import annotations


class GovernorError(RuntimeError):
    code = "governor_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = str(code)


class UnknownAccount(GovernorError):
    code = "unknown_account"

    def __init__(self, governor_id: int, message: str | None = None):
        self.governor_id = int(governor_id)
        super().__init__(message or f"Governor with ID {self.governor_id} does not exist.")


class DuplicateId(GovernorError):
    code = "duplicate_id"

    def __init__(self, governor_id: int):
        self.governor_id = int(governor_id)
        super().__init__(f"Governor with ID {self.governor_id} already exists. Choose a different ID.")


class FarmAlreadyLinked(GovernorError):
    code = "farm_already_linked"

    def __init__(self, farm_id: int, main_id: int):
        self.farm_id = int(farm_id)
        self.main_id = int(main_id)
        super().__init__(
            f"Farm governor {self.farm_id} is already linked to main governor {self.main_id}."
        )


class CannotFarmAMain(GovernorError):
    code = "cannot_farm_a_main"

    def __init__(self, farm_id: int):
        self.farm_id = int(farm_id)
        super().__init__(
            f"Governor {self.farm_id} is already a main account and cannot be used as a farm account. "
            "Unlink all farm accounts associated with it first."
        )


class CannotMainAFarm(GovernorError):
    code = "cannot_main_a_farm"

    def __init__(self, main_id: int):
        self.main_id = int(main_id)
        super().__init__(
            f"Governor {self.main_id} is already linked as a farm account and cannot own farm accounts."
        )


class SelfLink(GovernorError):
    code = "self_link"

    def __init__(self, governor_id: int):
        self.governor_id = int(governor_id)
        super().__init__(f"Governor {self.governor_id} cannot be linked to itself.")


class StorageUnavailable(GovernorError):
    code = "storage_unavailable"


class ValidationError(GovernorError):
    code = "validation_error"
