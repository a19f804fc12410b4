from PySide6.QtWidgets import QWidget, QLabel
from PySide6.QtCore import Qt
from qfluentwidgets import (
    ScrollArea,
    SettingCard,
    SettingCardGroup,
    OptionsSettingCard,
    RangeSettingCard,
    ExpandLayout,
    LineEdit,
    InfoBar,
    InfoBarPosition,
    setTheme,
)
from qfluentwidgets import FluentIcon as FIF

from plotdesigner.gui.config import cfg, Language, tr, translator


class SettingsTab(ScrollArea):
    """
    Settings Interface.
    """

    def __init__(self, parent=None):
        super().__init__(parent)

        self.scrollWidget = QWidget()
        self.expandLayout = ExpandLayout(self.scrollWidget)

        self.setWidget(self.scrollWidget)
        self.setWidgetResizable(True)
        self.setObjectName("settingsInterface")

        self._init_ui()
        self._connect_signals()

    def _init_ui(self):
        """Initialize UI controls."""
        self.setViewportMargins(0, 80, 0, 20)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)

        self.settingLabel = QLabel(tr("nav.settings"), self)
        self.settingLabel.setObjectName("settingLabel")
        self.settingLabel.move(36, 30)

        # --- General Group ---
        self.generalGroup = SettingCardGroup(
            tr("settings.group.general"), self.scrollWidget
        )

        self.themeCard = OptionsSettingCard(
            cfg.themeMode,
            FIF.BRUSH,
            tr("settings.label.theme"),
            tr("settings.desc.theme"),
            texts=[
                tr("settings.theme.light"),
                tr("settings.theme.dark"),
                tr("settings.theme.auto"),
            ],
            parent=self.generalGroup,
        )

        self.languageCard = OptionsSettingCard(
            cfg.language,
            FIF.LANGUAGE,
            tr("settings.label.language"),
            tr("settings.desc.language"),
            texts=[
                tr("settings.lang.auto"),
                tr("settings.lang.en"),
                tr("settings.lang.ja"),
            ],
            parent=self.generalGroup,
        )

        self.generalGroup.addSettingCard(self.themeCard)
        self.generalGroup.addSettingCard(self.languageCard)

        # --- Design Defaults Group ---
        self.designGroup = SettingCardGroup(
            tr("settings.group.design"), self.scrollWidget
        )

        self.rowsCard = RangeSettingCard(
            cfg.defaultRows, FIF.TILES, tr("settings.label.default_rows"), parent=self.designGroup
        )
        self.columnsCard = RangeSettingCard(
            cfg.defaultColumns, FIF.TILES, tr("settings.label.default_columns"), parent=self.designGroup
        )
        self.stripsCard = RangeSettingCard(
            cfg.defaultStrips, FIF.ALIGNMENT, tr("settings.label.default_strips"), parent=self.designGroup
        )
        self.numberWidthCard = RangeSettingCard(
            cfg.plotNumberWidth,
            FIF.EDIT,
            tr("settings.label.plot_number_width"),
            tr("settings.desc.plot_number_width"),
            parent=self.designGroup,
        )

        self.trialIdCard = SettingCard(
            FIF.TAG, tr("settings.label.trial_id"), tr("settings.desc.trial_id"), self.designGroup
        )
        self.trialIdEdit = LineEdit(self.trialIdCard)
        self.trialIdEdit.setText(cfg.get(cfg.trialId))
        self.trialIdEdit.setFixedWidth(200)
        self.trialIdCard.hBoxLayout.addWidget(self.trialIdEdit, 0, Qt.AlignmentFlag.AlignRight)
        self.trialIdCard.hBoxLayout.addSpacing(16)

        for card in (
            self.rowsCard,
            self.columnsCard,
            self.stripsCard,
            self.numberWidthCard,
            self.trialIdCard,
        ):
            self.designGroup.addSettingCard(card)

        self.expandLayout.setSpacing(28)
        self.expandLayout.setContentsMargins(36, 10, 36, 0)
        self.expandLayout.addWidget(self.generalGroup)
        self.expandLayout.addWidget(self.designGroup)

        self.scrollWidget.setObjectName("scrollWidget")

    def _connect_signals(self):
        """Connect signals."""
        cfg.themeChanged.connect(setTheme)
        cfg.language.valueChanged.connect(self.setLanguage)
        self.trialIdEdit.editingFinished.connect(self._on_trial_id_edited)

    def _on_trial_id_edited(self):
        trial_id = self.trialIdEdit.text().strip()
        if not trial_id:
            self.trialIdEdit.setText(cfg.get(cfg.trialId))
            return
        cfg.set(cfg.trialId, trial_id)

    def _on_restart_needed(self):
        """Show restart warning."""
        InfoBar.warning(
            title=tr("settings.msg.restart_title"),
            content=tr("settings.msg.restart"),
            orient=Qt.Orientation.Horizontal,
            isClosable=True,
            position=InfoBarPosition.TOP_RIGHT,
            duration=5000,
            parent=self,
        )

    def setLanguage(self, language: Language):
        """Set language."""
        translator.set_language(language)
        self._on_restart_needed()
