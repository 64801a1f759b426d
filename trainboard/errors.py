class TrainBoardError(Exception):
    """列車ボードの操作で発生する例外の基底クラス"""


class ValidationError(TrainBoardError):
    """入力値が業務ルールに違反している場合の例外"""


class NotFoundError(TrainBoardError):
    """指定したIDのレコードが存在しない場合の例外"""

    def __init__(self, record_id: str):
        super().__init__(f"Train not found: {record_id}")
        self.record_id = record_id
