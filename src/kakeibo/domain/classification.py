"""Keyword classification rules: suggestion, learning and bootstrap."""

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from kakeibo.domain.entities import (
    Category,
    ClassificationRule,
    MatchType,
    RuleOrigin,
    Transaction,
    TransactionKind,
)
from kakeibo.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_kind_mismatch,
    category_not_found,
    rule_keyword_conflict,
    rule_not_found,
)
from kakeibo.utils.text_normalizer import normalize

if TYPE_CHECKING:
    from kakeibo.database.base import Database

logger = logging.getLogger(__name__)

BOOTSTRAP_PRIORITY = 50
LEARNED_PRIORITY = 60
USER_PRIORITY = 100

MIN_LEARN_LENGTH = 2

# (keyword, category name, kind); installed once into an empty rule store.
DEFAULT_RULES: list[tuple[str, str, TransactionKind]] = [
    # コンビニ
    ("セブン", "コンビニ", TransactionKind.EXPENSE),
    ("ファミマ", "コンビニ", TransactionKind.EXPENSE),
    ("ローソン", "コンビニ", TransactionKind.EXPENSE),
    ("ミニストップ", "コンビニ", TransactionKind.EXPENSE),
    ("DAILY YAMAZAKI", "コンビニ", TransactionKind.EXPENSE),
    # スーパー
    ("イオン", "スーパー", TransactionKind.EXPENSE),
    ("イトーヨーカドー", "スーパー", TransactionKind.EXPENSE),
    ("ライフ", "スーパー", TransactionKind.EXPENSE),
    ("オーケー", "スーパー", TransactionKind.EXPENSE),
    ("西友", "スーパー", TransactionKind.EXPENSE),
    ("まいばすけっと", "スーパー", TransactionKind.EXPENSE),
    # 外食・カフェ
    ("マクドナルド", "外食", TransactionKind.EXPENSE),
    ("サイゼリヤ", "外食", TransactionKind.EXPENSE),
    ("すき家", "外食", TransactionKind.EXPENSE),
    ("松屋", "外食", TransactionKind.EXPENSE),
    ("吉野家", "外食", TransactionKind.EXPENSE),
    ("スシロー", "外食", TransactionKind.EXPENSE),
    ("スターバックス", "カフェ", TransactionKind.EXPENSE),
    ("スタバ", "カフェ", TransactionKind.EXPENSE),
    ("ドトール", "カフェ", TransactionKind.EXPENSE),
    ("タリーズ", "カフェ", TransactionKind.EXPENSE),
    ("Uber", "デリバリー", TransactionKind.EXPENSE),
    ("出前館", "デリバリー", TransactionKind.EXPENSE),
    # 買い物
    ("Amazon", "Amazon", TransactionKind.EXPENSE),
    ("アマゾン", "Amazon", TransactionKind.EXPENSE),
    ("ユニクロ", "衣服", TransactionKind.EXPENSE),
    ("ニトリ", "家具・インテリア", TransactionKind.EXPENSE),
    ("ダイソー", "雑貨", TransactionKind.EXPENSE),
    ("セリア", "雑貨", TransactionKind.EXPENSE),
    ("マツモトキヨシ", "ドラッグストア", TransactionKind.EXPENSE),
    ("ウエルシア", "ドラッグストア", TransactionKind.EXPENSE),
    # 交通
    ("JR", "電車・駅", TransactionKind.EXPENSE),
    ("Suica", "交通費", TransactionKind.EXPENSE),
    ("スイカ", "交通費", TransactionKind.EXPENSE),
    ("PASMO", "交通費", TransactionKind.EXPENSE),
    ("パスモ", "交通費", TransactionKind.EXPENSE),
    ("タクシー", "タクシー", TransactionKind.EXPENSE),
    ("DiDi", "タクシー", TransactionKind.EXPENSE),
    ("ENEOS", "ガソリン", TransactionKind.EXPENSE),
    ("出光", "ガソリン", TransactionKind.EXPENSE),
    ("ETC", "高速道路", TransactionKind.EXPENSE),
    ("NEXCO", "高速道路", TransactionKind.EXPENSE),
    ("パーキング", "駐車場", TransactionKind.EXPENSE),
    ("タイムズ", "駐車場", TransactionKind.EXPENSE),
    # 通信・サブスク
    ("ソフトバンク", "通信費", TransactionKind.EXPENSE),
    ("ドコモ", "通信費", TransactionKind.EXPENSE),
    ("KDDI", "通信費", TransactionKind.EXPENSE),
    ("楽天モバイル", "通信費", TransactionKind.EXPENSE),
    ("APPLE", "サブスク・デジタル", TransactionKind.EXPENSE),
    ("GOOGLE", "サブスク・デジタル", TransactionKind.EXPENSE),
    ("NETFLIX", "サブスク・デジタル", TransactionKind.EXPENSE),
    ("Spotify", "サブスク・デジタル", TransactionKind.EXPENSE),
    ("YOUTUBE", "サブスク・デジタル", TransactionKind.EXPENSE),
    # 娯楽
    ("シネマ", "娯楽", TransactionKind.EXPENSE),
    ("映画", "娯楽", TransactionKind.EXPENSE),
    ("ラウンドワン", "娯楽", TransactionKind.EXPENSE),
    ("チケット", "イベント", TransactionKind.EXPENSE),
    # 現金
    ("ATM", "現金入出金", TransactionKind.EXPENSE),
    # 収入
    ("給与", "給与", TransactionKind.INCOME),
    ("給料", "給与", TransactionKind.INCOME),
    ("賞与", "賞与", TransactionKind.INCOME),
    ("ボーナス", "賞与", TransactionKind.INCOME),
    ("利息", "利息", TransactionKind.INCOME),
    ("利子", "利息", TransactionKind.INCOME),
    ("ポイント還元", "ポイント還元", TransactionKind.INCOME),
    ("キャッシュバック", "ポイント還元", TransactionKind.INCOME),
    ("還付金", "還付金", TransactionKind.INCOME),
    ("報酬", "副業", TransactionKind.INCOME),
    ("返金", "受け取り", TransactionKind.INCOME),
    ("払戻", "受け取り", TransactionKind.INCOME),
    ("メルカリ売上", "受け取り", TransactionKind.INCOME),
]


def rule_matches(rule: ClassificationRule, text: str) -> bool:
    """Check whether a rule's keyword condition holds for ``text``.

    Both sides are normalized; disabled rules and empty keywords never match.
    """
    if not rule.enabled:
        return False
    keyword = normalize(rule.keyword)
    if not keyword:
        return False
    target = normalize(text)

    if rule.match_type == MatchType.CONTAINS:
        return keyword in target
    if rule.match_type == MatchType.PREFIX:
        return target.startswith(keyword)
    if rule.match_type == MatchType.SUFFIX:
        return target.endswith(keyword)
    return target == keyword


class ClassificationRuleEngine:
    """Suggests categories from free text and learns from user choices.

    The engine is the only writer of classification rules. Rules and the set
    of known category IDs are cached and reloaded by ``refresh``; every
    mutation through the engine refreshes automatically.
    """

    def __init__(self, db: "Database"):
        """Initialize the rule engine.

        Args:
            db: Database used as the rule store
        """
        self.db = db
        self._rules: Optional[list[ClassificationRule]] = None
        self._category_ids: set[int] = set()
        self._reported_inert: set[int] = set()

    def refresh(self) -> None:
        """Reload rules and categories from the store."""
        self._rules = self.db.list_rules()
        self._category_ids = {cat.id for cat in self.db.list_all_categories()}
        self._reported_inert.clear()

    def _loaded_rules(self) -> list[ClassificationRule]:
        if self._rules is None:
            self.refresh()
        return self._rules or []

    def list_rules(self) -> list[ClassificationRule]:
        """List all rules in evaluation order (priority desc, then creation order)."""
        return sorted(self._loaded_rules(), key=lambda r: (-r.priority, r.id))

    def _candidate_rules(self, kind: TransactionKind) -> list[ClassificationRule]:
        return [r for r in self.list_rules() if r.enabled and r.kind == kind]

    def _is_inert(self, rule: ClassificationRule) -> bool:
        if rule.target_category_id is not None and rule.target_category_id in self._category_ids:
            return False
        if rule.id not in self._reported_inert:
            self._reported_inert.add(rule.id)
            logger.warning(
                "Skipping rule %d ('%s'): target category %s does not exist",
                rule.id,
                rule.keyword,
                rule.target_category_id,
            )
        return True

    def find_matching_rule(
        self, texts: Iterable[Optional[str]], kind: TransactionKind
    ) -> Optional[ClassificationRule]:
        """Return the first rule, in evaluation order, matching any of ``texts``.

        Rules whose target category cannot be resolved are skipped.
        """
        if kind == TransactionKind.TRANSFER:
            return None
        candidates = [t for t in texts if t and normalize(t)]
        if not candidates:
            return None

        for rule in self._candidate_rules(kind):
            if self._is_inert(rule):
                continue
            if any(rule_matches(rule, text) for text in candidates):
                return rule
        return None

    def suggest(self, texts: Iterable[Optional[str]], kind: TransactionKind) -> Optional[int]:
        """Suggest a category ID for the given texts.

        Args:
            texts: Free texts to match, e.g. description and raw category label
            kind: Transaction kind; transfers never get a suggestion

        Returns:
            Category ID of the winning rule, or None
        """
        rule = self.find_matching_rule(texts, kind)
        return rule.target_category_id if rule is not None else None

    def find_by_keyword(self, keyword: str, kind: TransactionKind) -> Optional[ClassificationRule]:
        """Find a rule whose normalized keyword and kind equal the given ones."""
        key = normalize(keyword)
        for rule in self._loaded_rules():
            if rule.kind == kind and normalize(rule.keyword) == key:
                return rule
        return None

    def add_rule(
        self,
        keyword: str,
        category_id: int,
        kind: TransactionKind = TransactionKind.EXPENSE,
        match_type: MatchType = MatchType.CONTAINS,
        priority: int = USER_PRIORITY,
    ) -> int:
        """Author a rule by hand.

        Returns:
            Rule ID

        Raises:
            ValidationError: If the keyword is empty, the kind is transfer or
                the category kind does not match
            NotFoundError: If the category doesn't exist
            ConflictError: If a rule for the same keyword and kind exists
        """
        key = normalize(keyword)
        if not key:
            raise ValidationError("Rule keyword must not be empty")
        if kind == TransactionKind.TRANSFER:
            raise ValidationError("Rules cannot target transfers")
        self._check_category(category_id, kind)

        existing = self.find_by_keyword(key, kind)
        if existing is not None:
            raise ConflictError(rule_keyword_conflict(key, kind.value, existing.id))

        rule_id = self.db.create_rule(
            keyword=key,
            match_type=match_type,
            target_category_id=category_id,
            kind=kind,
            priority=priority,
            origin=RuleOrigin.USER,
        )
        self.refresh()
        return rule_id

    def set_enabled(self, rule_id: int, enabled: bool) -> None:
        """Enable or disable a rule.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        if self.db.get_rule(rule_id) is None:
            raise NotFoundError(rule_not_found(rule_id))
        self.db.update_rule_enabled(rule_id, enabled)
        self.refresh()

    def learn(
        self, description: str, kind: TransactionKind, category_id: Optional[int]
    ) -> Optional[int]:
        """Learn a rule from a user's manual category choice.

        Nothing is learned for transfers, missing categories, descriptions
        shorter than two normalized characters, descriptions the current rules
        already predict correctly, or when any rule already exists for the
        same normalized keyword and kind.

        Returns:
            ID of the new rule, or None when nothing was learned
        """
        if category_id is None or kind == TransactionKind.TRANSFER:
            return None
        key = normalize(description)
        if len(key) < MIN_LEARN_LENGTH:
            return None
        self._check_category(category_id, kind)

        if self.suggest([description], kind) == category_id:
            return None
        if self.find_by_keyword(key, kind) is not None:
            return None

        rule_id = self.db.create_rule(
            keyword=key,
            match_type=MatchType.CONTAINS,
            target_category_id=category_id,
            kind=kind,
            priority=LEARNED_PRIORITY,
            origin=RuleOrigin.LEARNED,
        )
        logger.info("Learned rule %d: '%s' -> category %d", rule_id, key, category_id)
        self.refresh()
        return rule_id

    def learn_from_transaction(self, transaction: Transaction) -> Optional[int]:
        """Learn from a categorized ledger transaction."""
        return self.learn(transaction.description, transaction.kind, transaction.category_id)

    def bootstrap(self, categories: Optional[list[Category]] = None) -> int:
        """Install the default rule set into an empty rule store.

        Category names are resolved against ``categories`` (all categories
        when omitted); defaults whose category is missing are skipped.

        Returns:
            Number of rules created
        """
        if self.db.list_rules():
            return 0
        if categories is None:
            categories = self.db.list_all_categories()

        by_name: dict[tuple[str, TransactionKind], int] = {}
        for category in categories:
            by_name.setdefault((category.name, category.kind), category.id)

        created = 0
        seen: set[tuple[str, TransactionKind]] = set()
        for keyword, category_name, kind in DEFAULT_RULES:
            key = normalize(keyword)
            category_id = by_name.get((category_name, kind))
            if category_id is None or (key, kind) in seen:
                continue
            seen.add((key, kind))
            self.db.create_rule(
                keyword=key,
                match_type=MatchType.CONTAINS,
                target_category_id=category_id,
                kind=kind,
                priority=BOOTSTRAP_PRIORITY,
                origin=RuleOrigin.BOOTSTRAP,
            )
            created += 1

        logger.info("Installed %d default classification rules", created)
        self.refresh()
        return created

    def _check_category(self, category_id: int, kind: TransactionKind) -> None:
        category = self.db.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        if category.kind != kind:
            raise ValidationError(
                category_kind_mismatch(category.name, category.kind.value, kind.value)
            )
